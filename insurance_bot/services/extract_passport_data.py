import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from insurance_bot.models import UNKNOWN

MRZ_LENGTH = 44  # TD3, passport booklets
MRZ_WEIGHTS = (7, 3, 1)

# --- Regex ---
MRZ_CHARS_RE = re.compile(r"^[A-Z0-9<]+$")
VIN_TOKEN_RE = re.compile(r"[A-Z0-9]+")
VIN_RE = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

# --- OCR confusions ---
MRZ_SUBS = {
    "«": "<<", "‹": "<", "<K<": "<<<", " ": "",
}
# I, O and Q never appear in a VIN
VIN_SUBS = {"O": "0", "Q": "0", "I": "1"}


def normalize_text(text: str) -> str:
    t = unicodedata.normalize("NFKC", text)
    t = t.replace("–", "-").replace("—", "-")
    t = re.sub(r"[ \t]{2,}", " ", t)
    return t


def _split_lines(text: str) -> List[str]:
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


def normalize_mrz_line(line: str) -> str:
    t = line.upper()
    for a, b in MRZ_SUBS.items():
        t = t.replace(a, b)
    return t


def mrz_check_digit(value: str) -> str:
    total = 0
    for idx, ch in enumerate(value):
        if ch.isdigit():
            weight = int(ch)
        elif ch.isalpha():
            weight = ord(ch) - ord("A") + 10
        else:
            weight = 0
        total += weight * MRZ_WEIGHTS[idx % 3]
    return str(total % 10)


def find_mrz(text: str) -> Optional[Tuple[str, str]]:
    """Return the two TD3 lines of a passport MRZ, padded to 44 characters."""
    lines = [normalize_mrz_line(ln) for ln in _split_lines(text)]
    for first, second in zip(lines, lines[1:]):
        if not (first.startswith("P") and "<<" in first and len(first) >= 30):
            continue
        if len(second) < 28 or not MRZ_CHARS_RE.match(first) or not MRZ_CHARS_RE.match(second):
            continue
        return first[:MRZ_LENGTH].ljust(MRZ_LENGTH, "<"), second[:MRZ_LENGTH].ljust(MRZ_LENGTH, "<")
    return None


def _mrz_name(raw: str) -> str:
    cleaned = re.sub(r"<+", " ", raw).strip()
    return cleaned.title() if cleaned else UNKNOWN


def parse_mrz(first: str, second: str) -> Dict[str, str]:
    surname_raw, _, given_raw = first[5:].partition("<<")
    given_names = _mrz_name(given_raw)

    number_raw = second[0:9]
    check = second[9]
    number = number_raw.replace("<", "")
    if not number or (check != "<" and mrz_check_digit(number_raw) != check):
        number = UNKNOWN

    return {
        "name": given_names.split()[0] if given_names != UNKNOWN else UNKNOWN,
        "surname": _mrz_name(surname_raw),
        "passport_id": number,
    }


def extract_passport_fields(text: str) -> Dict[str, str]:
    fields = {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}
    mrz = find_mrz(normalize_text(text))
    if mrz:
        fields.update(parse_mrz(*mrz))
    return fields


def extract_vehicle_id(text: str) -> str:
    for ln in _split_lines(normalize_text(text).upper()):
        for candidate in VIN_TOKEN_RE.findall(ln):
            if len(candidate) != 17:
                continue
            for a, b in VIN_SUBS.items():
                candidate = candidate.replace(a, b)
            if VIN_RE.match(candidate):
                return candidate
    return UNKNOWN
