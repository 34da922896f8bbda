"""
Content identifier (CID) computation and parsing.

CIDs are CIDv1 values: varint version, varint codec, sha2-256 multihash,
rendered as lowercase base32 with the multibase prefix "b". CIDv0 values
(base58btc "Qm...") are accepted when parsing.

All functions here are pure; nothing touches the network.
"""

import base64
import binascii
import hashlib
import re
from dataclasses import dataclass

from property_oracle.core.errors import InvalidCidError


CID_VERSION = 1
SHA2_256 = 0x12
SHA2_256_LENGTH = 32

# Multicodec table entries used by the pipeline
CODECS = {
    "raw": 0x55,
    "dag-json": 0x0129,
    "dag-pb": 0x70,
}
CODEC_NAMES = {code: name for name, code in CODECS.items()}

RAW = "raw"
DAG_JSON = "dag-json"

ZERO_HASH = "0x" + "00" * 32

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE32_PATTERN = re.compile(r"^b[a-z2-7]+$")
_CIDV0_PATTERN = re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$")
_BYTES32_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class ParsedCid:
    """Decoded CID components."""

    version: int
    codec: str
    digest: bytes

    @property
    def digest_hex(self) -> str:
        return "0x" + self.digest.hex()


# =======================
# VARINT / MULTIBASE
# =======================

def encode_varint(value: int) -> bytes:
    """Unsigned LEB128 varint, as used by multiformats."""
    if value < 0:
        raise ValueError("varint cannot be negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at offset. Returns (value, new_offset)."""
    value = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise ValueError("truncated varint")
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, offset
        shift += 7
        if shift > 63:
            raise ValueError("varint too long")


def _base32_encode(data: bytes) -> str:
    return "b" + base64.b32encode(data).decode("ascii").rstrip("=").lower()


def _base32_decode(text: str) -> bytes:
    body = text[1:].upper()
    return base64.b32decode(body + "=" * (-len(body) % 8))


def _base58_decode(text: str) -> bytes:
    number = 0
    for char in text:
        number = number * 58 + _BASE58_ALPHABET.index(char)
    leading = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading + body


# =======================
# COMPUTE
# =======================

def _codec_code(codec: str) -> int:
    try:
        return CODECS[codec]
    except KeyError:
        raise ValueError(f"Unsupported codec '{codec}'. Expected one of: {', '.join(CODECS)}") from None


def cid_from_digest(digest: bytes, codec: str = RAW) -> str:
    """
    Build a CIDv1 string from a sha2-256 digest.

    Args:
        digest: 32-byte sha2-256 digest
        codec: Multicodec name

    Returns:
        base32 CIDv1 string
    """
    if len(digest) != SHA2_256_LENGTH:
        raise ValueError(f"sha2-256 digest must be {SHA2_256_LENGTH} bytes, got {len(digest)}")
    multihash = bytes([SHA2_256, SHA2_256_LENGTH]) + digest
    return _base32_encode(encode_varint(CID_VERSION) + encode_varint(_codec_code(codec)) + multihash)


def compute_cid(data: bytes, codec: str = RAW) -> str:
    """
    Compute the CIDv1 of a byte string.

    The same bytes and codec always produce the same CID.

    Args:
        data: Bytes to address (canonical JSON or a binary payload)
        codec: "dag-json" for canonical documents, "raw" for binary payloads

    Returns:
        base32 CIDv1 string
    """
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"compute_cid expects bytes, got {type(data).__name__}")
    return cid_from_digest(hashlib.sha256(data).digest(), codec)


# =======================
# PARSE
# =======================

def parse_cid(text: str) -> ParsedCid:
    """
    Decode a CID string.

    Accepts base32 CIDv1 ("b...") and base58btc CIDv0 ("Qm..."). A leading
    "." is stripped first.

    Raises:
        InvalidCidError: If the text is not a sha2-256 CID
    """
    if not isinstance(text, str):
        raise InvalidCidError(text, "not a string")
    value = text.strip()
    if value.startswith("."):
        value = value[1:]

    if _CIDV0_PATTERN.match(value):
        raw = _base58_decode(value)
        if len(raw) != 34 or raw[0] != SHA2_256 or raw[1] != SHA2_256_LENGTH:
            raise InvalidCidError(text, "malformed CIDv0 multihash")
        return ParsedCid(version=0, codec="dag-pb", digest=raw[2:])

    if not _BASE32_PATTERN.match(value):
        raise InvalidCidError(text, "unsupported multibase encoding")
    try:
        raw = _base32_decode(value)
        version, offset = decode_varint(raw)
        codec_code, offset = decode_varint(raw, offset)
        hash_code, offset = decode_varint(raw, offset)
        hash_length, offset = decode_varint(raw, offset)
    except (ValueError, binascii.Error) as e:
        raise InvalidCidError(text, str(e)) from e

    if version != CID_VERSION:
        raise InvalidCidError(text, f"unsupported CID version {version}")
    if codec_code not in CODEC_NAMES:
        raise InvalidCidError(text, f"unsupported codec 0x{codec_code:x}")
    if hash_code != SHA2_256 or hash_length != SHA2_256_LENGTH:
        raise InvalidCidError(text, "only sha2-256 multihashes are supported")
    digest = raw[offset:]
    if len(digest) != SHA2_256_LENGTH:
        raise InvalidCidError(text, "digest length mismatch")
    return ParsedCid(version=version, codec=CODEC_NAMES[codec_code], digest=digest)


def is_cid(text: object) -> bool:
    """Return True when text parses as a supported CID."""
    if not isinstance(text, str):
        return False
    try:
        parse_cid(text)
    except InvalidCidError:
        return False
    return True


def same_content(cid_a: str, cid_b: str) -> bool:
    """
    True when two CIDs address the same bytes.

    Compares multihash digests, so a raw CID derived from an on-chain hash
    matches the dag-json CID of the same document.
    """
    return parse_cid(cid_a).digest == parse_cid(cid_b).digest


# =======================
# CONTRACT (bytes32) CONVERSION
# =======================

def cid_to_bytes32_hex(cid: str) -> str:
    """
    Extract the sha2-256 digest of a CID as a 0x-prefixed bytes32 hex string.

    Examples:
        >>> cid_to_bytes32_hex(compute_cid(b"", RAW))
        '0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    return parse_cid(cid).digest_hex


def bytes32_hex_to_cid(value: str | bytes | None, codec: str = RAW) -> str | None:
    """
    Rebuild a CIDv1 from an on-chain bytes32 hash.

    Returns None for empty or all-zero hashes, which the contract uses for
    "no value".
    """
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        digest = bytes(value)
    else:
        if value in ("", "0x"):
            return None
        if not _BYTES32_PATTERN.match(value):
            raise InvalidCidError(value, "not a bytes32 hex string")
        digest = bytes.fromhex(value[2:] if value.startswith("0x") else value)
    if not any(digest):
        return None
    return cid_from_digest(digest, codec)
