"""Allowlist entries and their leaf encoding.

leaf = keccak256(abi.encode(address minter, uint256 maxCount, uint256 price))

The address is canonicalized to its checksum form before encoding, so the
same minter yields the same leaf whether written in lower or upper case.
Mixed-case input must already carry a valid EIP-55 checksum.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

import base58
from eth_abi import encode
from eth_utils import is_checksum_address, is_hex_address, keccak
from web3 import Web3

from merkle_allowlist.errors import InvalidEntryError

# --- CONFIGURATION ---

UINT256_MAX = 2**256 - 1
TRON_ADDRESS_PREFIX = 0x41
LEAF_TYPES = ["address", "uint256", "uint256"]

# --- TYPES ---

@dataclass(frozen=True)
class Entry:
    minter: str   # checksummed 0x address
    max_count: int  # uint256
    price: int      # uint256, wei

    def to_json(self) -> Dict[str, Any]:
        return {
            "minter": self.minter,
            "maxCount": self.max_count,
            "price": str(self.price),  # string for JSON safety
        }

# --- HELPERS ---

def tron_to_evm_address(tron_addr: str) -> str:
    """
    Convert Tron Base58Check addr (T...) to EVM 0x address by stripping leading 0x41.
    Returns checksummed 0x address.
    """
    try:
        decoded = base58.b58decode_check(tron_addr)
    except ValueError as exc:
        raise InvalidEntryError("minter", tron_addr, f"bad base58check: {exc}") from None
    if len(decoded) != 21 or decoded[0] != TRON_ADDRESS_PREFIX:
        raise InvalidEntryError("minter", tron_addr, "not a Tron address")
    return Web3.to_checksum_address("0x" + decoded[1:].hex())


def normalize_address(addr: Any) -> str:
    if not isinstance(addr, str):
        raise InvalidEntryError("minter", addr, "address must be a string")
    a = addr.strip()
    if a.startswith("T") and len(a) == 34:
        return tron_to_evm_address(a)
    if a[:2].lower() == "0x":
        a = "0x" + a[2:]
    else:
        a = "0x" + a
    if not is_hex_address(a):
        raise InvalidEntryError("minter", addr, "not a 20-byte hex address")
    body = a[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address(a):
        raise InvalidEntryError("minter", addr, "bad address checksum")
    return Web3.to_checksum_address(a.lower())


def ensure_uint256(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidEntryError(field, value, "expected an unsigned integer")
    if isinstance(value, str):
        v = value.strip()
        if not (v.isascii() and v.isdigit()):
            raise InvalidEntryError(field, value, "expected a decimal integer string")
        value = int(v)
    if not isinstance(value, int):
        raise InvalidEntryError(field, value, "expected an unsigned integer")
    if not (0 <= value <= UINT256_MAX):
        raise InvalidEntryError(field, value, "exceeds uint256 range")
    return value


def ether_to_wei(field: str, value: Any) -> int:
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidEntryError(field, value, "expected a decimal ether amount") from None
    if not amount.is_finite() or amount < 0:
        raise InvalidEntryError(field, value, "must be a non-negative amount")
    exact = amount.scaleb(18)
    if exact != exact.to_integral_value():
        raise InvalidEntryError(field, value, "finer than 1 wei")
    try:
        wei = Web3.to_wei(amount, "ether")
    except ValueError as exc:
        raise InvalidEntryError(field, value, str(exc)) from None
    return ensure_uint256(field, wei)


def make_entry(minter: Any, max_count: Any, price: Any) -> Entry:
    return Entry(
        minter=normalize_address(minter),
        max_count=ensure_uint256("maxCount", max_count),
        price=ensure_uint256("price", price),
    )


def entry_from_json(obj: Any) -> Entry:
    """Build an Entry from `{minter, maxCount, price}` (or `priceEther`)."""
    if not isinstance(obj, dict):
        raise InvalidEntryError("entry", obj, "expected a JSON object")
    for key in ("minter", "maxCount"):
        if key not in obj:
            raise InvalidEntryError(key, None, "missing field")
    if "price" in obj:
        price = obj["price"]
    elif "priceEther" in obj:
        price = ether_to_wei("priceEther", obj["priceEther"])
    else:
        raise InvalidEntryError("price", None, "missing field")
    return make_entry(obj["minter"], obj["maxCount"], price)

# --- HASHING (matches the on-chain leaf check) ---

def encode_entry(entry: Entry) -> bytes:
    """32-byte padded address || 32-byte maxCount || 32-byte price."""
    return encode(LEAF_TYPES, [entry.minter, entry.max_count, entry.price])


def calculate_leaf_hash(entry: Union[Entry, Dict[str, Any]]) -> bytes:
    if not isinstance(entry, Entry):
        entry = entry_from_json(entry)
    return keccak(encode_entry(entry))
