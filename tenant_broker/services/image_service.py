"""
Image Service

Thin create/delete wrappers around the image and compute service handles.
Request failures are reported as ApiRequestError.
"""

from typing import Any, Mapping

import structlog
from keystoneauth1 import exceptions as ks_exceptions
from openstack import exceptions as os_exceptions

from ..exceptions import wrap_api_exception

logger = structlog.get_logger(__name__)

REQUEST_ERRORS = (
    os_exceptions.SDKException,
    ks_exceptions.ClientException,
    ValueError,
    TypeError,
)


class ImageService:
    """Creates and deletes images through a Handle's cached service handles."""

    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def create_image(self, attributes: Mapping[str, Any]) -> Any:
        """
        Create an image from ``attributes`` using the Image service.

        Raises:
            ApiRequestError: If the request is rejected
        """
        service = self.handle.service("Image")
        try:
            image = service.create_image(**attributes)
        except REQUEST_ERRORS as exc:
            logger.error(
                "create_image_failed", name=attributes.get("name"), error=str(exc)
            )
            raise wrap_api_exception(exc, service="Image") from exc
        logger.info("image_created", name=attributes.get("name"))
        return image

    def delete_image(self, image_ref: str) -> None:
        """
        Delete the image identified by ``image_ref`` using the Compute service.

        Raises:
            ApiRequestError: If the request is rejected
        """
        service = self.handle.service("Compute")
        try:
            service.delete_image(image_ref)
        except REQUEST_ERRORS as exc:
            logger.error("delete_image_failed", image_ref=image_ref, error=str(exc))
            raise wrap_api_exception(exc, service="Compute") from exc
        logger.info("image_deleted", image_ref=image_ref)
