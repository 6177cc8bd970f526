import logging
import os
import uuid

from werkzeug.utils import secure_filename

from utils.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "heic"}


def _extension(filename):
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext in ALLOWED_EXTENSIONS:
            return ext
    return "jpg"


def save_period_image(file, intern_id, day_key, period, folder):
    """
    Store the captured photo for one period entry.
    Returns {"imageUrl", "imageId"}; imageId is the path relative to folder.
    """
    if file is None or not getattr(file, "filename", None):
        raise ValidationError("A captured image is required", field="image")

    data = file.read()
    if not data:
        raise ValidationError("The uploaded image is empty", field="image")

    intern_dir = secure_filename(str(intern_id))
    name = secure_filename(f"{day_key}_{period}_{uuid.uuid4().hex[:8]}.{_extension(file.filename)}")
    target_dir = os.path.join(folder, intern_dir)
    os.makedirs(target_dir, exist_ok=True)

    with open(os.path.join(target_dir, name), "wb") as handle:
        handle.write(data)

    image_id = f"{intern_dir}/{name}"
    logger.debug("Saved %s image %s (%d bytes)", period, image_id, len(data))
    return {"imageUrl": f"/uploads/{image_id}", "imageId": image_id}


def delete_period_image(image_id, folder):
    if not image_id:
        return False
    path = os.path.join(folder, *image_id.split("/"))
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    return True


def delete_log_images(log, folder):
    """Remove the AM and PM photos referenced by a raw log document."""
    removed = 0
    for slot in ("amLog", "pmLog"):
        entry = log.get(slot) or {}
        if delete_period_image(entry.get("imageId"), folder):
            removed += 1
    return removed
