import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealership.auth.dependencies import any_admin
from dealership.auth.rbac import AdminPrincipal
from dealership.core.db import get_db
from dealership.exceptions import ValidationError
from dealership.middleware.uploads import IMAGE_UPLOAD, read_uploads
from dealership.models.bike import BikeImage
from dealership.routers.bikes import get_bike_or_404
from dealership.schemas.bike import BikeImageOut
from dealership.services.storage import ObjectStorage, get_object_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bike-images", tags=["bike-images"])


@router.get("/{bike_id}")
async def list_bike_images(bike_id: int, db: AsyncSession = Depends(get_db)):
    bike = await get_bike_or_404(db, bike_id)
    return {
        "success": True,
        "count": len(bike.images),
        "data": [BikeImageOut.model_validate(image) for image in bike.images],
    }


@router.post("/{bike_id}", status_code=201)
async def upload_bike_images(
    bike_id: int,
    images: List[UploadFile] = File(...),
    alt: Optional[str] = Form(None),
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    bike = await get_bike_or_404(db, bike_id)
    files = await read_uploads(images, IMAGE_UPLOAD)
    if not files:
        raise ValidationError("At least one image is required", "images")

    stored = []
    try:
        for upload in files:
            obj = await storage.upload(upload.content, upload.content_type, folder=f"bikes/{bike.id}", filename=upload.filename)
            stored.append(obj)
            bike.images.append(BikeImage(
                storage_key=obj.key,
                url=obj.url,
                alt=alt or bike.model_name,
                # the first image of a bike without images becomes primary
                is_primary=not any(image.is_primary for image in bike.images),
            ))
        await db.commit()
    except Exception:
        await db.rollback()
        for obj in stored:
            try:
                await storage.delete(obj.key)
            except Exception:
                logger.warning("Failed to clean up uploaded image", extra={"key": obj.key}, exc_info=True)
        raise

    logger.info("Bike images uploaded", extra={"bike_id": bike_id, "count": len(stored)})
    return {
        "success": True,
        "message": f"{len(stored)} image(s) uploaded successfully",
        "data": [BikeImageOut.model_validate(image) for image in bike.images],
    }


@router.patch("/{bike_id}/primary/{image_id}")
async def set_primary_image(
    bike_id: int,
    image_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
):
    bike = await get_bike_or_404(db, bike_id)
    target = next((image for image in bike.images if image.id == image_id), None)
    if target is None:
        raise HTTPException(status_code=404, detail="Image not found")

    for image in bike.images:
        image.is_primary = image.id == image_id
    await db.commit()
    return {
        "success": True,
        "message": "Primary image updated",
        "data": [BikeImageOut.model_validate(image) for image in bike.images],
    }


@router.delete("/image/{image_id}")
async def delete_bike_image(
    image_id: int,
    principal: AdminPrincipal = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
):
    image = (await db.execute(select(BikeImage).where(BikeImage.id == image_id))).scalar_one_or_none()
    if not image:
        raise HTTPException(status_code=404, detail="Image not found")

    bike = await get_bike_or_404(db, image.bike_id)
    storage_key, was_primary = image.storage_key, image.is_primary
    bike.images.remove(image)
    if was_primary and bike.images:
        # images are ordered by id, so this is the oldest remaining one
        bike.images[0].is_primary = True
    await db.commit()

    try:
        await storage.delete(storage_key)
    except Exception:
        logger.warning("Failed to delete stored image", extra={"key": storage_key}, exc_info=True)

    return {"success": True, "message": "Image deleted successfully"}
