# app/services/storage.py

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile, HTTPException, status
import aiofiles

from app.core.config import settings

logger = logging.getLogger(__name__)


def get_upload_dir() -> Path:
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def build_public_url(filename: str | None) -> str | None:
    """Ссылка, по которой файл раздается статикой (/temp)."""
    if not filename:
        return None
    return f"{settings.BASE_URL}/temp/{filename}"


async def save_upload(file: UploadFile) -> str:
    """
    Сохраняет загруженный файл в UPLOAD_DIR под уникальным именем
    и возвращает это имя.
    """
    if not file or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is missing.")

    unique_filename = f"{uuid.uuid4()}{Path(file.filename).suffix}"
    file_path = get_upload_dir() / unique_filename

    try:
        async with aiofiles.open(file_path, 'wb') as out_file:
            while content := await file.read(1024 * 1024):  # Читаем по 1MB
                await out_file.write(content)
    except OSError:
        logger.error(f"Failed to save uploaded file '{file.filename}'.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not save file.")

    logger.info(f"Saved uploaded file '{file.filename}' as '{file_path}'.")
    return unique_filename
