"""
Tests for MRZ and VIN parsing of OCR output.
"""

from insurance_bot.models import UNKNOWN
from insurance_bot.services.extract_passport_data import (
    extract_passport_fields,
    extract_vehicle_id,
    find_mrz,
    mrz_check_digit,
)

MRZ_LINE_1 = "P<UTOERIKSSON<<ANNA<MARIA".ljust(44, "<")
MRZ_LINE_2 = "L898902C36UTO7408122F1204159ZE184226B<<<<<10"


class TestMrz:

    def test_check_digit(self):
        assert mrz_check_digit("L898902C3") == "6"
        assert mrz_check_digit("740812") == "2"

    def test_find_mrz_skips_page_text(self):
        text = f"PASSPORT\nUtopia\nSurname ERIKSSON\n{MRZ_LINE_1}\n{MRZ_LINE_2}\n"

        assert find_mrz(text) == (MRZ_LINE_1, MRZ_LINE_2)

    def test_fields_from_mrz(self):
        fields = extract_passport_fields(f"{MRZ_LINE_1}\n{MRZ_LINE_2}")

        assert fields == {"name": "Anna", "surname": "Eriksson", "passport_id": "L898902C3"}

    def test_spaces_inside_mrz_are_ignored(self):
        spaced = "P<UTO ERIKSSON<<ANNA<MARIA <<<<<<<<<<<<<<<<<<<"

        fields = extract_passport_fields(f"{spaced}\n{MRZ_LINE_2}")

        assert fields["surname"] == "Eriksson"

    def test_bad_check_digit_gives_unknown_number(self):
        broken = "L898902C37" + MRZ_LINE_2[10:]

        fields = extract_passport_fields(f"{MRZ_LINE_1}\n{broken}")

        assert fields["passport_id"] == UNKNOWN
        assert fields["surname"] == "Eriksson"

    def test_no_mrz_gives_sentinels(self):
        fields = extract_passport_fields("just some blurry text\nnothing here")

        assert fields == {"name": UNKNOWN, "surname": UNKNOWN, "passport_id": UNKNOWN}

    def test_empty_text(self):
        assert extract_passport_fields("")["name"] == UNKNOWN


class TestVin:

    def test_vin_on_labelled_line(self):
        text = "Vehicle registration\nVIN: WVWZZZ1JZXW000000\nColour: blue"

        assert extract_vehicle_id(text) == "WVWZZZ1JZXW000000"

    def test_ocr_confusions_are_fixed(self):
        assert extract_vehicle_id("vin wvwzzz1jzxwoooooo") == "WVWZZZ1JZXW000000"

    def test_missing_vin(self):
        assert extract_vehicle_id("Registration AB1234\nOwner Anna") == UNKNOWN
