"""
Encryption-type table and family classification.

Codes are the standard Kerberos enctype numbers as written in the key
list of a dump; negative codes are implementation-private types.

Unknown codes are not rejected: they resolve to the label UNKNOWN(<code>)
so a dump from a newer KDC can still be summarised.
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType

ENCTYPE_NAMES: MappingProxyType[int, str] = MappingProxyType({
    0: "KRB5_ENCTYPE_NULL",
    1: "KRB5_ENCTYPE_DES_CBC_CRC",
    2: "KRB5_ENCTYPE_DES_CBC_MD4",
    3: "KRB5_ENCTYPE_DES_CBC_MD5",
    5: "KRB5_ENCTYPE_DES3_CBC_MD5",
    7: "KRB5_ENCTYPE_OLD_DES3_CBC_SHA1",
    8: "KRB5_ENCTYPE_SIGN_DSA_GENERATE",
    9: "KRB5_ENCTYPE_ENCRYPT_RSA_PRIV",
    10: "KRB5_ENCTYPE_ENCRYPT_RSA_PUB",
    16: "KRB5_ENCTYPE_DES3_CBC_SHA1",
    17: "KRB5_ENCTYPE_AES128_CTS_HMAC_SHA1_96",
    18: "KRB5_ENCTYPE_AES256_CTS_HMAC_SHA1_96",
    19: "KRB5_ENCTYPE_AES128_CTS_HMAC_SHA256_128",
    20: "KRB5_ENCTYPE_AES256_CTS_HMAC_SHA384_192",
    23: "KRB5_ENCTYPE_ARCFOUR_HMAC_MD5",
    24: "KRB5_ENCTYPE_ARCFOUR_HMAC_MD5_56",
    25: "KRB5_ENCTYPE_CAMELLIA128_CTS_CMAC",
    26: "KRB5_ENCTYPE_CAMELLIA256_CTS_CMAC",
    48: "KRB5_ENCTYPE_ENCTYPE_PK_CROSS",
    -128: "KRB5_ENCTYPE_ARCFOUR_MD4",
    -133: "KRB5_ENCTYPE_ARCFOUR_HMAC_OLD",
    -135: "KRB5_ENCTYPE_ARCFOUR_HMAC_OLD_EXP",
    -4096: "KRB5_ENCTYPE_DES_CBC_NONE",
    -4097: "KRB5_ENCTYPE_DES3_CBC_NONE",
    -4098: "KRB5_ENCTYPE_DES_CFB64_NONE",
    -4099: "KRB5_ENCTYPE_DES_PCBC_NONE",
    -4100: "KRB5_ENCTYPE_DIGEST_MD5_NONE",
    -4101: "KRB5_ENCTYPE_CRAM_MD5_NONE",
})


class EncryptionFamily(str, Enum):
    """Buckets a principal is sorted into by the enctypes of its keys."""

    DES = "des"
    DES3 = "des3"
    ARCFOUR = "arcfour"
    AES = "aes"


_AES_SHA1 = re.compile(r"AES\d+_CTS_HMAC_SHA1_96")


def resolve_enctype(code: int) -> str:
    """Return the symbolic name for an enctype code, or UNKNOWN(<code>)."""
    return ENCTYPE_NAMES.get(code, f"UNKNOWN({code})")


def classify_enctype(name: str) -> frozenset[EncryptionFamily]:
    """
    Return the families an enctype name belongs to.

    Rules are applied independently so the result is additive, though
    every name in the table lands in at most one family.
    """
    families: set[EncryptionFamily] = set()
    if "_DES_" in name:
        families.add(EncryptionFamily.DES)
    if "_DES3_" in name:
        families.add(EncryptionFamily.DES3)
    if "ARCFOUR" in name:
        families.add(EncryptionFamily.ARCFOUR)
    if _AES_SHA1.search(name):
        families.add(EncryptionFamily.AES)
    return frozenset(families)
