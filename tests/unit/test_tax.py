import pytest

from basil.utils.tax import derive_tax_fields, split_gst, vat_amount


class TestIndia:
    def test_defaults(self):
        assert derive_tax_fields("IN", {}) == {"gstMode": "INTRA", "hsnCode": "", "placeOfSupply": ""}

    def test_keeps_gst_fields_only(self):
        data = {"gstMode": "inter", "hsnCode": " 8708 ", "placeOfSupply": "Karnataka", "vatRate": 21}

        fields = derive_tax_fields("IN", data)

        assert fields == {"gstMode": "INTER", "hsnCode": "8708", "placeOfSupply": "Karnataka"}

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            derive_tax_fields("IN", {"gstMode": "EXPORT"})


class TestVat:
    def test_default_rates(self):
        assert derive_tax_fields("NL", {}) == {"vatRate": 21, "vatMode": "normal"}
        assert derive_tax_fields("DE", {}) == {"vatRate": 19, "vatMode": "normal"}

    def test_drops_gst_fields(self):
        fields = derive_tax_fields("NL", {"vatRate": 9, "gstMode": "INTRA", "hsnCode": "8708"})

        assert fields == {"vatRate": 9, "vatMode": "normal"}

    @pytest.mark.parametrize("country,rate", [("NL", 7), ("DE", 9), ("DE", 21)])
    def test_rejects_rate_of_other_country(self, country, rate):
        with pytest.raises(ValueError):
            derive_tax_fields(country, {"vatRate": rate})

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            derive_tax_fields("DE", {"vatMode": "kor_plus"})

    def test_customer_vat_id_only_for_intra_eu(self):
        fields = derive_tax_fields("NL", {"vatMode": "reverse_charge", "customerVatId": "DE123456789"})

        assert "customerVatId" not in fields

    def test_intra_eu_requires_customer_vat_id(self):
        with pytest.raises(ValueError):
            derive_tax_fields("DE", {"vatMode": "intra_eu_b2b"})

    def test_intra_eu_validates_customer_vat_id(self):
        fields = derive_tax_fields("DE", {"vatMode": "intra_eu_b2b", "customerVatId": "nl123456789b01"})

        assert fields["customerVatId"] == "NL123456789B01"

    def test_intra_eu_other_member_state(self):
        fields = derive_tax_fields("NL", {"vatMode": "intra_eu_b2b", "customerVatId": "FR12345678901"})

        assert fields["customerVatId"] == "FR12345678901"

    def test_intra_eu_bad_customer_vat_id(self):
        with pytest.raises(ValueError):
            derive_tax_fields("DE", {"vatMode": "intra_eu_b2b", "customerVatId": "NL12345"})

    def test_unsupported_country(self):
        with pytest.raises(ValueError):
            derive_tax_fields("US", {})


class TestSplits:
    def test_intra_state(self):
        assert split_gst(1000, 18, "INTRA") == {"cgst": 90.0, "sgst": 90.0, "igst": 0.0, "totalTax": 180.0}

    def test_inter_state(self):
        assert split_gst(1000, 18, "INTER") == {"cgst": 0.0, "sgst": 0.0, "igst": 180.0, "totalTax": 180.0}

    def test_halves_add_up_to_total(self):
        split = split_gst(10.2, 5, "INTRA")

        assert split["totalTax"] == 0.51
        assert split["cgst"] + split["sgst"] == pytest.approx(0.51)

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            split_gst(100, 18, "BOTH")

    def test_vat_amount(self):
        assert vat_amount(100, 21) == 21.0
        assert vat_amount(100, 21, "export") == 0.0
