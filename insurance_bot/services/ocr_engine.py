import asyncio
import logging
from functools import partial
from typing import Dict, Optional

import cv2
import numpy as np
import pytesseract

from insurance_bot.collaborators import ExtractionError
from insurance_bot.models import UNKNOWN, ExtractedData
from insurance_bot.services.extract_passport_data import extract_passport_fields, extract_vehicle_id

logger = logging.getLogger(__name__)

TESS_CONFIG = "--oem 3 --psm 6"  # line-oriented text
MRZ_CONFIG = "--oem 3 --psm 6 -c tessedit_char_whitelist=ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789<"
MRZ_BAND = 0.7  # the MRZ sits in the bottom 30% of the data page

OCR_ERRORS = (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, cv2.error)


def decode_image(content: bytes) -> Optional[np.ndarray]:
    if not content:
        return None
    buffer = np.frombuffer(content, dtype=np.uint8)
    return cv2.imdecode(buffer, cv2.IMREAD_COLOR)


# ---------- base preprocessing ----------
def _enhance(img: np.ndarray) -> np.ndarray:
    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    gray = cv2.medianBlur(gray, 3)
    clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(8, 8))
    eq = clahe.apply(gray)
    norm = cv2.normalize(eq, None, 0, 255, cv2.NORM_MINMAX)
    return norm


def _mrz_band(gray: np.ndarray) -> np.ndarray:
    h = gray.shape[0]
    band = gray[int(h * MRZ_BAND):, :]
    return cv2.threshold(band, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1]


def _ocr(img: np.ndarray, lang: str, config: str = TESS_CONFIG) -> str:
    return pytesseract.image_to_string(img, lang=lang, config=config)


# ---------- public functions ----------
def read_passport(content: bytes, lang: str = "eng") -> Dict[str, str]:
    """OCR the passport MRZ, falling back to the whole page when the band is unreadable."""
    fields = {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}
    img = decode_image(content)
    if img is None:
        logger.warning("Could not decode passport image (%d bytes)", len(content))
        return fields

    gray = _enhance(img)
    fields = extract_passport_fields(_ocr(_mrz_band(gray), "eng", MRZ_CONFIG))
    if all(value == UNKNOWN for value in fields.values()):
        logger.info("MRZ band unreadable, running OCR on the whole page")
        fields = extract_passport_fields(_ocr(gray, lang))
    return fields


def read_vehicle_id(content: bytes, lang: str = "eng") -> str:
    img = decode_image(content)
    if img is None:
        logger.warning("Could not decode vehicle document (%d bytes)", len(content))
        return UNKNOWN
    return extract_vehicle_id(_ocr(_enhance(img), lang))


async def read_vehicle_id_or_unknown(content: Optional[bytes], lang: str = "eng") -> str:
    if not content:
        return UNKNOWN
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, partial(read_vehicle_id, content, lang))
    except OCR_ERRORS as exc:
        logger.warning("Vehicle document OCR failed: %s", exc)
        return UNKNOWN


class TesseractExtractor:
    """Local extractor: OpenCV preprocessing plus Tesseract, run in the default executor."""

    def __init__(self, lang: str = "eng") -> None:
        self._lang = lang

    async def extract(self, image: bytes, vehicle_image: Optional[bytes] = None) -> ExtractedData:
        loop = asyncio.get_running_loop()
        try:
            fields = await loop.run_in_executor(None, partial(read_passport, image, self._lang))
        except OCR_ERRORS as exc:
            raise ExtractionError(f"Tesseract failed on passport: {exc}") from exc

        vehicle_id = await read_vehicle_id_or_unknown(vehicle_image, self._lang)
        logger.info("Passport OCR finished: passport id %s", "found" if fields["passport_id"] != UNKNOWN else "missing")
        return ExtractedData(vehicle_id=vehicle_id, **fields)
