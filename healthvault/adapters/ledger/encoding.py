"""Opaque ledger argument encoding.

Numeric ledger arguments are submitted as fixed-width hex values, with an
accompanying proof blob that binds a set of values together. Neither is
cryptographically meaningful: they stand in for a real encrypted-input and
input-proof scheme and must be replaced before production use.

Format:
    value: "0x" + hex(utf-8 decimal text), left-padded with "0" to 64 hex chars (32 bytes)
    proof: "0x" + hex(utf-8 comma-joined decimal texts), left-padded to 128 hex chars (64 bytes)
    transaction hash: "0x" + 64 random hex chars
"""

import math
import random
from decimal import Decimal
from typing import Iterable, Union

ENCODED_VALUE_HEX_WIDTH = 64
INPUT_PROOF_HEX_WIDTH = 128
TRANSACTION_HASH_BITS = 256

Numeric = Union[int, float, Decimal]


def format_numeric(value: Numeric) -> str:
    """Decimal text for a number; whole floats drop their fractional part (70.0 -> "70").

    Raises:
        ValueError: For NaN, infinity or non-numeric input
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError(f"Cannot encode non-numeric value of type {type(value).__name__}")
    if isinstance(value, int):
        return str(value)
    as_float = float(value)
    if not math.isfinite(as_float):
        raise ValueError("Cannot encode a non-finite value")
    if as_float.is_integer():
        return str(int(as_float))
    return repr(as_float)


def _pad_hex(text: str, width: int) -> str:
    encoded = text.encode("utf-8").hex()
    if len(encoded) > width:
        raise ValueError(f"Encoded value needs {len(encoded)} hex chars, limit is {width}")
    return "0x" + encoded.rjust(width, "0")


def encode_value(value: Numeric) -> str:
    """Encode one number as an opaque 32-byte hex value."""
    return _pad_hex(format_numeric(value), ENCODED_VALUE_HEX_WIDTH)


def build_input_proof(values: Iterable[Numeric]) -> str:
    """Build the opaque 64-byte proof blob over a set of values."""
    return _pad_hex(",".join(format_numeric(v) for v in values), INPUT_PROOF_HEX_WIDTH)


def decode_value(encoded: str) -> str:
    """Recover the decimal text from an encoded value (for inspection and tests)."""
    body = encoded[2:] if encoded.startswith("0x") else encoded
    stripped = body.lstrip("0")
    # hex pairs: restore a leading zero nibble eaten by lstrip
    if len(stripped) % 2:
        stripped = "0" + stripped
    return bytes.fromhex(stripped).decode("utf-8")


def generate_transaction_hash(rng: random.Random) -> str:
    """Synthetic transaction hash: 0x + 64 hex chars."""
    return "0x" + format(rng.getrandbits(TRANSACTION_HASH_BITS), "064x")
