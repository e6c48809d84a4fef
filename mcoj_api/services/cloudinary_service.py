"""
Cloudinary object store.
Buckets map onto Cloudinary folders; uploads and deletes retry transient
failures with exponential backoff.
"""
import cloudinary
import cloudinary.api
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError
import logging
import asyncio
from typing import Dict, List, Optional

from mcoj_api.errors import ConfigurationError, UpstreamStoreError
from mcoj_api.services.storage import BlobStore, check_key

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif", "svg"}
VIDEO_EXTENSIONS = {"mp4", "mov", "webm", "m4v"}


def resource_type_for(key: str) -> str:
    """Cloudinary keeps images, videos and other files in separate namespaces."""
    extension = key.rsplit(".", 1)[-1].lower() if "." in key else ""
    if extension in IMAGE_EXTENSIONS:
        return "image"
    if extension in VIDEO_EXTENSIONS:
        return "video"
    return "raw"


def public_id_for(bucket: str, key: str) -> str:
    """
    Build the Cloudinary public_id for bucket/key.
    Image and video public IDs carry no extension; raw ones keep it.

    Example: ("gallery", "ab12.jpg") -> "gallery/ab12"
    """
    if resource_type_for(key) == "raw":
        return f"{bucket}/{key}"
    return f"{bucket}/{key.rsplit('.', 1)[0]}"


class CloudinaryBlobStore(BlobStore):
    """BlobStore backed by a Cloudinary account."""

    name = "cloudinary"

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, max_retries: int = 3):
        if not (cloud_name and api_key and api_secret):
            raise ConfigurationError("Cloudinary credentials not set in environment variables")

        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True  # Always use HTTPS for secure URLs
        )
        self.cloud_name = cloud_name
        self.max_retries = max_retries

    async def upload(self, bucket: str, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Upload data to Cloudinary, overwriting any previous object with the same key.

        Returns:
            str: Secure HTTPS URL of the stored object

        Raises:
            UpstreamStoreError: If upload fails after all retries
        """
        check_key(key)
        public_id = public_id_for(bucket, key)
        resource_type = resource_type_for(key)

        for attempt in range(self.max_retries):
            try:
                result = cloudinary.uploader.upload(
                    data,
                    public_id=public_id,
                    resource_type=resource_type,
                    overwrite=True,
                    invalidate=True,
                )
                logger.info(f"Successfully uploaded {bucket}/{key} to Cloudinary: {result['public_id']}")
                return result["secure_url"]

            except CloudinaryError as e:
                logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                    continue

                logger.error(f"Cloudinary upload failed after {self.max_retries} attempts: {str(e)}")
                raise UpstreamStoreError(f"Failed to upload {bucket}/{key}: {str(e)}")

    async def delete(self, bucket: str, key: str) -> bool:
        """
        Delete an object from Cloudinary with CDN invalidation.

        Returns:
            bool: False if Cloudinary reported the object as not found
        """
        check_key(key)
        public_id = public_id_for(bucket, key)

        for attempt in range(self.max_retries):
            try:
                result = cloudinary.uploader.destroy(
                    public_id,
                    invalidate=True,
                    resource_type=resource_type_for(key)
                )
                outcome = result.get("result")
                if outcome == "ok":
                    logger.info(f"Successfully deleted {public_id} from Cloudinary")
                    return True
                if outcome == "not found":
                    logger.info(f"Cloudinary object {public_id} was already gone")
                    return False

                logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")
                return False

            except CloudinaryError as e:
                logger.warning(f"Cloudinary delete error (attempt {attempt + 1}/{self.max_retries}) for {public_id}: {str(e)}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                    continue

                logger.error(f"Cloudinary delete failed after {self.max_retries} attempts for {public_id}: {str(e)}")
                raise UpstreamStoreError(f"Failed to delete {bucket}/{key}: {str(e)}")

    async def list(self, bucket: str) -> List[Dict]:
        objects = []
        try:
            for resource_type in ("image", "video", "raw"):
                result = cloudinary.api.resources(
                    type="upload",
                    prefix=f"{bucket}/",
                    resource_type=resource_type,
                    max_results=500,
                )
                for resource in result.get("resources", []):
                    name = resource["public_id"][len(bucket) + 1:]
                    if resource_type != "raw" and resource.get("format"):
                        name = f"{name}.{resource['format']}"
                    objects.append({"name": name, "size": resource.get("bytes", 0), "id": resource["public_id"]})
        except CloudinaryError as e:
            logger.error(f"Failed to list Cloudinary folder {bucket}: {str(e)}")
            raise UpstreamStoreError(f"Failed to list {bucket}: {str(e)}")

        return sorted(objects, key=lambda obj: obj["name"])

    def object_id(self, bucket: str, key: str) -> str:
        # Cloudinary normalizes formats (jpeg is listed back as jpg); the public_id is stable
        return public_id_for(bucket, key)

    def public_url(self, bucket: str, key: str) -> str:
        resource_type = resource_type_for(key)
        options = {"resource_type": resource_type, "secure": True}
        if resource_type != "raw":
            options["format"] = key.rsplit(".", 1)[-1]
        url, _ = cloudinary.utils.cloudinary_url(public_id_for(bucket, key), **options)
        return url

    async def bucket_exists(self, bucket: str) -> bool:
        try:
            folders = cloudinary.api.root_folders().get("folders", [])
        except CloudinaryError as e:
            logger.error(f"Failed to list Cloudinary folders: {str(e)}")
            raise UpstreamStoreError(f"Failed to check bucket {bucket}: {str(e)}")
        return any(folder.get("name") == bucket for folder in folders)

    async def create_bucket(self, bucket: str, public: bool = False) -> bool:
        # Cloudinary delivery URLs are public; the flag only matters for the local store
        try:
            cloudinary.api.create_folder(bucket)
        except CloudinaryError as e:
            logger.error(f"Error creating bucket \"{bucket}\": {str(e)}")
            return False
        logger.info(f"Successfully created bucket \"{bucket}\"")
        return True
