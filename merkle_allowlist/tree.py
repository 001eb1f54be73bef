"""Sorted-pair keccak Merkle tree over allowlist leaves.

Leaves are sorted before the first level is built and every pair is hashed
smaller-first, so the root depends only on the set of entries and a proof is a
plain list of sibling hashes (OpenZeppelin MerkleProof compatible).
An unpaired node at the end of a level is promoted unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Union

from eth_utils import keccak

from merkle_allowlist.entry import Entry, calculate_leaf_hash, entry_from_json
from merkle_allowlist.errors import BundleError, EmptyAllowlistError, LeafNotFoundError

logger = logging.getLogger(__name__)

HashLike = Union[bytes, str]

# --- HELPERS ---

def to_bytes32(value: HashLike) -> bytes:
    if isinstance(value, str):
        v = value[2:] if value[:2].lower() == "0x" else value
        try:
            value = bytes.fromhex(v)
        except ValueError:
            raise BundleError(f"Invalid hex hash: {value!r}") from None
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise BundleError(f"Expected a 32-byte hash, got: {value!r}")
    return bytes(value)


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(min(a, b) + max(a, b))

# --- MERKLE LOGIC ---

class MerkleTree:
    def __init__(self, leaves: Iterable[bytes]):
        self.leaves = sorted(leaves)
        if not self.leaves:
            raise EmptyAllowlistError()
        self._index: Dict[bytes, int] = {}
        for i, leaf in enumerate(self.leaves):
            if leaf in self._index:
                logger.warning("Duplicate leaf 0x%s in allowlist", leaf.hex())
            else:
                self._index[leaf] = i
        self.tree = self._build_tree(self.leaves)

    def _build_tree(self, leaves: List[bytes]) -> List[List[bytes]]:
        tree = [leaves]
        current = leaves
        while len(current) > 1:
            nxt: List[bytes] = []
            for i in range(0, len(current), 2):
                if i + 1 < len(current):
                    nxt.append(hash_pair(current[i], current[i + 1]))
                else:
                    # Promote odd node
                    nxt.append(current[i])
            tree.append(nxt)
            current = nxt
        logger.debug("Built tree: %d leaves, %d levels", len(leaves), len(tree))
        return tree

    def get_root(self) -> bytes:
        return self.tree[-1][0]

    def get_proof(self, index: int) -> List[bytes]:
        if not (0 <= index < len(self.leaves)):
            raise IndexError(f"Leaf index out of range: {index}")
        proof: List[bytes] = []
        pos = index
        for level in self.tree[:-1]:
            parent, offset = divmod(pos, 2)
            pair = level[parent * 2:parent * 2 + 2]
            # a promoted node has no sibling at this level
            if len(pair) == 2:
                proof.append(pair[1 - offset])
            pos = parent
        return proof

    def get_proof_for_leaf(self, leaf: HashLike) -> List[bytes]:
        lf = to_bytes32(leaf)
        if lf not in self._index:
            raise LeafNotFoundError(lf)
        return self.get_proof(self._index[lf])

    def __contains__(self, leaf: object) -> bool:
        return leaf in self._index

    def __len__(self) -> int:
        return len(self.leaves)


def verify_proof(leaf: HashLike, proof: Sequence[HashLike], root: HashLike) -> bool:
    computed = to_bytes32(leaf)
    for p in proof:
        computed = hash_pair(computed, to_bytes32(p))
    return computed == to_bytes32(root)

# --- ALLOWLIST ---

@dataclass
class AllowlistTree:
    entries: List[Entry]
    leaves: List[bytes]  # one per entry, input order
    merkle: MerkleTree = field(repr=False)
    name: Union[str, None] = None

    @property
    def root(self) -> bytes:
        return self.merkle.get_root()

    @property
    def proofs(self) -> List[List[bytes]]:
        return [self.merkle.get_proof_for_leaf(leaf) for leaf in self.leaves]

    def proof_for(self, leaf: HashLike) -> List[bytes]:
        return self.merkle.get_proof_for_leaf(leaf)

    def proof_for_entry(self, entry: Entry) -> List[bytes]:
        return self.proof_for(calculate_leaf_hash(entry))

    def verify(self, entry: Entry, proof: Sequence[HashLike]) -> bool:
        return verify_proof(calculate_leaf_hash(entry), proof, self.root)

    def to_json(self) -> Dict[str, object]:
        out: Dict[str, object] = {}
        if self.name is not None:
            out["name"] = self.name
        out["root"] = to_hex(self.root)
        items = []
        for entry, leaf, proof in zip(self.entries, self.leaves, self.proofs):
            item = entry.to_json()
            item["hash"] = to_hex(leaf)
            item["proof"] = [to_hex(p) for p in proof]
            items.append(item)
        out["entries"] = items
        return out


def build_tree(entries: Sequence[Union[Entry, Dict[str, object]]], name: Union[str, None] = None) -> AllowlistTree:
    """Hash every entry and build the allowlist tree.

    All entries are encoded (and so validated) before any level is built.
    """
    entries = [e if isinstance(e, Entry) else entry_from_json(e) for e in entries]
    if not entries:
        raise EmptyAllowlistError()
    leaves = [calculate_leaf_hash(e) for e in entries]
    return AllowlistTree(entries=entries, leaves=leaves, merkle=MerkleTree(leaves), name=name)
