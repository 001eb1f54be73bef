from merkle_allowlist.entry import Entry, calculate_leaf_hash, entry_from_json, make_entry, normalize_address
from merkle_allowlist.errors import (
    AllowlistError,
    BundleError,
    EmptyAllowlistError,
    InvalidEntryError,
    LeafNotFoundError,
)
from merkle_allowlist.tree import AllowlistTree, MerkleTree, build_tree, hash_pair, verify_proof

__version__ = "0.1.0"
