"""
Image classification client for Lishka Upload Service.
"""

import asyncio
from typing import List, Tuple
import httpx
from pydantic import ValidationError
from services.base import BackendService
from core.exceptions import ClassificationException
from models.upload_model import ClassificationResult, UploadedImage, UploadTarget


class ClassificationService(BackendService):
    """Asks the backend whether an image shows a fish or fishing gear."""

    async def classify(self, image: UploadedImage) -> ClassificationResult:
        """
        Classify a single image.

        Args:
            image: Image to classify

        Returns:
            Classification result

        Raises:
            ClassificationException: If the backend call fails or answers garbage
        """
        path = self.settings.classify_path
        self.logger.info(f"[UPLOAD] Classifying {image.filename} ({image.size} bytes)")

        try:
            response = await self.http.post(
                path,
                files=self.build_files([image]),
                headers=self.build_headers(),
                timeout=self.settings.request_timeout,
            )
            response.raise_for_status()
            payload = response.json()
            result = ClassificationResult.model_validate(payload.get("data") or {})
        except httpx.HTTPStatusError as e:
            self.logger.error(f"Classification of {image.filename} failed with status {e.response.status_code}")
            raise ClassificationException(filename=image.filename) from e
        except httpx.HTTPError as e:
            self.logger.error(f"Classification request for {image.filename} failed: {e}")
            raise ClassificationException(filename=image.filename) from e
        except (ValueError, AttributeError, ValidationError) as e:
            self.logger.error(f"Invalid classification response for {image.filename}: {e}")
            raise ClassificationException(filename=image.filename) from e

        self.logger.debug(f"Classified {image.filename} as {result.type} ({result.confidence})")
        return result

    async def classify_batch(
        self, images: List[UploadedImage]
    ) -> Tuple[List[Tuple[UploadedImage, UploadTarget]], List[ClassificationException]]:
        """
        Classify images in parallel.

        A failed classification does not fail the batch; the image is
        assigned to the fish lane instead.

        Args:
            images: Images to classify

        Returns:
            Tuple of (image/target assignments in input order, failures)
        """
        results = await asyncio.gather(
            *(self.classify(image) for image in images),
            return_exceptions=True
        )

        assignments: List[Tuple[UploadedImage, UploadTarget]] = []
        failures: List[ClassificationException] = []
        for image, result in zip(images, results):
            if isinstance(result, ClassificationResult):
                assignments.append((image, UploadTarget(result.type)))
                continue
            if not isinstance(result, ClassificationException):
                # gather() hands back anything raised, including cancellation
                if isinstance(result, BaseException) and not isinstance(result, Exception):
                    raise result
                self.logger.error(f"Unexpected classification error for {image.filename}: {result}")
                result = ClassificationException(filename=image.filename)
            self.logger.warning(f"[UPLOAD] Defaulting {image.filename} to fish after classification failure")
            failures.append(result)
            assignments.append((image, UploadTarget.FISH))

        return assignments, failures
