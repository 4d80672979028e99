# src/basil/utils/indian_states.py
"""
INDIAN STATES AND UNION TERRITORIES
GST state codes are the first two digits of a GSTIN.
"""

from typing import Dict, List, NamedTuple, Optional


class IndianState(NamedTuple):
    code: str
    name: str
    gst_code: str


INDIAN_STATES: List[IndianState] = [
    IndianState("AN", "Andaman and Nicobar Islands", "35"),
    IndianState("AP", "Andhra Pradesh", "37"),
    IndianState("AR", "Arunachal Pradesh", "12"),
    IndianState("AS", "Assam", "18"),
    IndianState("BR", "Bihar", "10"),
    IndianState("CH", "Chandigarh", "04"),
    IndianState("CT", "Chhattisgarh", "22"),
    IndianState("DH", "Dadra and Nagar Haveli and Daman and Diu", "26"),
    IndianState("DL", "Delhi", "07"),
    IndianState("GA", "Goa", "30"),
    IndianState("GJ", "Gujarat", "24"),
    IndianState("HP", "Himachal Pradesh", "02"),
    IndianState("HR", "Haryana", "06"),
    IndianState("JH", "Jharkhand", "20"),
    IndianState("JK", "Jammu and Kashmir", "01"),
    IndianState("KA", "Karnataka", "29"),
    IndianState("KL", "Kerala", "32"),
    IndianState("LA", "Ladakh", "38"),
    IndianState("LD", "Lakshadweep", "31"),
    IndianState("MH", "Maharashtra", "27"),
    IndianState("ML", "Meghalaya", "17"),
    IndianState("MN", "Manipur", "14"),
    IndianState("MP", "Madhya Pradesh", "23"),
    IndianState("MZ", "Mizoram", "15"),
    IndianState("NL", "Nagaland", "13"),
    IndianState("OR", "Odisha", "21"),
    IndianState("PB", "Punjab", "03"),
    IndianState("PY", "Puducherry", "34"),
    IndianState("RJ", "Rajasthan", "25"),
    IndianState("SK", "Sikkim", "11"),
    IndianState("TG", "Telangana", "36"),
    IndianState("TN", "Tamil Nadu", "33"),
    IndianState("TR", "Tripura", "16"),
    IndianState("UP", "Uttar Pradesh", "09"),
    IndianState("UT", "Uttarakhand", "08"),
    IndianState("WB", "West Bengal", "19"),
]

_BY_GST_CODE: Dict[str, IndianState] = {state.gst_code: state for state in INDIAN_STATES}
_BY_CODE: Dict[str, IndianState] = {state.code: state for state in INDIAN_STATES}


def get_state_by_gst_code(gst_code: str) -> Optional[IndianState]:
    return _BY_GST_CODE.get(gst_code)


def get_state_by_code(code: str) -> Optional[IndianState]:
    return _BY_CODE.get(code.upper()) if code else None
