"""Allowlist generation front-end: JSON in, root + proof bundle out.

Input is a list of `{minter, maxCount, price}` objects, or a named allowlist
`{"name": ..., "entries": [...]}`. The bundle written back has the shape
`{name?, root, entries: [{minter, maxCount, price, hash, proof}]}`.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from merkle_allowlist.entry import Entry, calculate_leaf_hash, entry_from_json, normalize_address
from merkle_allowlist.errors import AllowlistError, BundleError
from merkle_allowlist.tree import AllowlistTree, build_tree, to_bytes32, to_hex, verify_proof

logger = logging.getLogger(__name__)

# --- CONFIGURATION ---

DEFAULT_OUTPUT = "gen.json"
DEFAULT_CONTRACT = "MerkleData"

# --- INPUT ---

def parse_allowlist(data: Any) -> Tuple[Optional[str], List[Entry]]:
    name = None
    if isinstance(data, dict):
        if "entries" not in data:
            raise BundleError("Allowlist object has no 'entries' list")
        name = data.get("name")
        data = data["entries"]
    if not isinstance(data, list):
        raise BundleError("Allowlist must be a list of entries or an object with 'entries'")
    entries = [entry_from_json(obj) for obj in data]
    logger.debug("Loaded %d entries", len(entries))
    return name, entries


def load_json(path: str) -> Any:
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise BundleError(f"{path}: invalid JSON: {exc}") from None


def load_allowlist(path: str) -> Tuple[Optional[str], List[Entry]]:
    return parse_allowlist(load_json(path))

# --- GENERATION ---

def generate_merkle_data(entries: Sequence[Entry], name: Optional[str] = None) -> Dict[str, Any]:
    return build_tree(entries, name=name).to_json()


def print_results(tree: AllowlistTree) -> None:
    print("=" * 60)
    print(f"MERKLE ROOT: {to_hex(tree.root)}")
    print(f"Entry Count: {len(tree.entries)}")
    print("=" * 60)

    for i, (entry, leaf, proof) in enumerate(zip(tree.entries, tree.leaves, tree.proofs)):
        print(f"\n--- Entry {i} ---")
        print(f"Minter: {entry.minter}")
        print(f"Max Count: {entry.max_count}")
        print(f"Price: {entry.price} wei ({Web3.from_wei(entry.price, 'ether')} ether)")
        print(f"Hash: {to_hex(leaf)}")
        print(f"Proof: [{', '.join(to_hex(p) for p in proof)}]")


def render_solidity(tree: AllowlistTree) -> str:
    """Proof arrays as Solidity statements, for pasting into contract tests."""
    lines = ["// Solidity", f"bytes32 ROOT = {to_hex(tree.root)};"]
    for i, (entry, proof) in enumerate(zip(tree.entries, tree.proofs)):
        name = f"PROOF_{i}_" + entry.minter.replace("0x", "").upper()
        lines.append("")
        lines.append(f"// {entry.minter} maxCount={entry.max_count} price={entry.price}")
        lines.append(f"bytes32[] memory {name} = new bytes32[]({len(proof)});")
        for j, p in enumerate(proof):
            lines.append(f"{name}[{j}] = {to_hex(p)};")
    return "\n".join(lines)


def render_solidity_file(trees: Sequence[AllowlistTree], contract: str = DEFAULT_CONTRACT) -> str:
    """A test-data contract holding root and entries for each named allowlist.

    Sets are looked up with `getTestSetByName(name)`.
    """
    lines = [
        "// SPDX-License-Identifier: MIT",
        "pragma solidity ^0.8.10;",
        "",
        "// Generated by merkle-allowlist. Do not edit.",
        f"contract {contract} {{",
        "    struct MerkleEntry {",
        "        address minter;",
        "        uint256 maxCount;",
        "        uint256 price;",
        "        bytes32 hash;",
        "        bytes32[] proof;",
        "    }",
        "",
        "    struct TestSet {",
        "        bytes32 root;",
        "        MerkleEntry[] entries;",
        "    }",
        "",
        "    mapping(string => TestSet) private sets;",
        "",
        "    function getTestSetByName(string memory name) external view returns (TestSet memory) {",
        "        return sets[name];",
        "    }",
        "",
        "    constructor() {",
        "        bytes32[] memory proof;",
    ]
    for n, tree in enumerate(trees):
        name = tree.name if tree.name is not None else f"set-{n}"
        lines.append(f"        // {name}")
        lines.append(f"        sets[{json.dumps(name)}].root = {to_hex(tree.root)};")
        for entry, leaf, proof in zip(tree.entries, tree.leaves, tree.proofs):
            lines.append(f"        proof = new bytes32[]({len(proof)});")
            for j, p in enumerate(proof):
                lines.append(f"        proof[{j}] = {to_hex(p)};")
            lines.append(
                f"        sets[{json.dumps(name)}].entries.push(MerkleEntry({entry.minter}, "
                f"{entry.max_count}, {entry.price}, {to_hex(leaf)}, proof));"
            )
    lines.append("    }")
    lines.append("}")
    return "\n".join(lines) + "\n"


def save_solidity(trees: Sequence[AllowlistTree], path: str) -> None:
    contract = os.path.splitext(os.path.basename(path))[0]
    if not contract.isidentifier():
        contract = DEFAULT_CONTRACT
    with open(path, "w") as f:
        f.write(render_solidity_file(trees, contract=contract))
    print(f"\nSaved: {path}")


def save_json(data: Dict[str, Any], path: str) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    print(f"\nSaved: {path}")

# --- BUNDLE CHECKS ---

def verify_bundle(bundle: Any) -> List[Tuple[int, str, bool]]:
    """Re-derive every entry hash and check its proof against the bundle root.

    Returns `(index, minter, ok)` per entry. An entry whose stored hash does
    not match its fields is reported as failing.
    """
    if not isinstance(bundle, dict) or "root" not in bundle or "entries" not in bundle:
        raise BundleError("Bundle must be an object with 'root' and 'entries'")
    root = to_bytes32(bundle["root"])
    if not isinstance(bundle["entries"], list):
        raise BundleError("Bundle 'entries' must be a list")
    results = []
    for i, item in enumerate(bundle["entries"]):
        entry = entry_from_json(item)
        leaf = calculate_leaf_hash(entry)
        stored = item.get("hash")
        if stored is not None and to_bytes32(stored) != leaf:
            logger.warning("Entry %d: stored hash %s does not match fields", i, stored)
            results.append((i, entry.minter, False))
            continue
        proof = item.get("proof", [])
        if not isinstance(proof, list):
            raise BundleError(f"Bundle entry {i}: 'proof' must be a list")
        ok = verify_proof(leaf, proof, root)
        results.append((i, entry.minter, ok))
    return results


def find_entries(bundle: Any, address: str) -> List[Dict[str, Any]]:
    minter = normalize_address(address)
    entries = bundle.get("entries", []) if isinstance(bundle, dict) else []
    return [
        item for item in entries
        if isinstance(item, dict) and normalize_address(item.get("minter")) == minter
    ]

# --- CLI ---

def cmd_generate(args: argparse.Namespace) -> int:
    name, entries = load_allowlist(args.input)
    tree = build_tree(entries, name=args.name or name)
    print_results(tree)
    if args.solidity:
        print()
        print(render_solidity(tree))
    if args.solidity_out:
        save_solidity([tree], args.solidity_out)
    output = args.output or os.path.join(os.path.dirname(os.path.abspath(args.input)), DEFAULT_OUTPUT)
    save_json(tree.to_json(), output)
    return 0


def cmd_solidity(args: argparse.Namespace) -> int:
    trees = []
    for path in args.inputs:
        name, entries = load_allowlist(path)
        if name is None:
            name = os.path.splitext(os.path.basename(path))[0]
        trees.append(build_tree(entries, name=name))
        print(f"{name}: {to_hex(trees[-1].root)}")
    output = args.output or os.path.join(
        os.path.dirname(os.path.abspath(args.inputs[0])), DEFAULT_CONTRACT + ".sol"
    )
    save_solidity(trees, output)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    bundle = load_json(args.bundle)
    results = verify_bundle(bundle)
    print(f"Merkle Root: {bundle['root']}")
    failed = 0
    for i, minter, ok in results:
        print(f"Entry {i} {minter} is allowlisted: {ok}")
        if not ok:
            failed += 1
    print(f"\n{len(results) - failed}/{len(results)} proofs valid")
    return 1 if failed else 0


def cmd_proof(args: argparse.Namespace) -> int:
    bundle = load_json(args.bundle)
    matches = find_entries(bundle, args.address)
    if not matches:
        print(f"Address {args.address} is NOT in the allowlist.")
        return 1
    print(json.dumps(matches, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="merkle-allowlist",
        description="Build a sorted-pair keccak Merkle allowlist and its proofs.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="build root and proofs from an entry list")
    gen.add_argument("input", help="JSON entry list")
    gen.add_argument("-o", "--output", help=f"bundle path (default: {DEFAULT_OUTPUT} next to input)")
    gen.add_argument("--name", help="allowlist name stored in the bundle")
    gen.add_argument("--solidity", action="store_true", help="also print Solidity proof arrays")
    gen.add_argument("--solidity-out", metavar="PATH", help="also write a Solidity test-data contract")
    gen.set_defaults(func=cmd_generate)

    sol = sub.add_parser("solidity", help="render named allowlists into one Solidity test-data contract")
    sol.add_argument("inputs", nargs="+", help="JSON entry lists, one test set each")
    sol.add_argument("-o", "--output", help=f"contract path (default: {DEFAULT_CONTRACT}.sol next to first input)")
    sol.set_defaults(func=cmd_solidity)

    ver = sub.add_parser("verify", help="check every proof in a bundle")
    ver.add_argument("bundle")
    ver.set_defaults(func=cmd_verify)

    prf = sub.add_parser("proof", help="print bundle entries for one address")
    prf.add_argument("bundle")
    prf.add_argument("address")
    prf.set_defaults(func=cmd_proof)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (AllowlistError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
