"""Tests for the JSON front-end and the merkle-allowlist CLI."""

import json

import pytest

from merkle_allowlist.errors import BundleError, InvalidEntryError
from merkle_allowlist.generate import (
    find_entries,
    generate_merkle_data,
    main,
    parse_allowlist,
    render_solidity,
    render_solidity_file,
    verify_bundle,
)
from merkle_allowlist.tree import build_tree

ENTRIES = [
    {"minter": "0x07966725a7928083bA85e75276518561D0c28B19", "maxCount": 5, "price": "10000000000000000"},
    {"minter": "0x8ca40d25a725cb131fa253b7aef87a01ebd3e29e", "maxCount": 5, "priceEther": "0.01"},
    {"minter": "0x9444390c01Dd5b7249E53FAc31290F7dFF53450D", "maxCount": 4, "price": "100000000000000000"},
    {"minter": "0x2F7218644600c2860709623de3E8A1f82d27ed3b", "maxCount": 4, "price": "100000000000000000"},
]


@pytest.fixture
def allowlist_file(tmp_path):
    path = tmp_path / "allowlist.json"
    path.write_text(json.dumps({"name": "main", "entries": ENTRIES}))
    return path


@pytest.fixture
def bundle():
    _, entries = parse_allowlist(ENTRIES)
    return generate_merkle_data(entries, name="main")


class TestParseAllowlist:
    def test_plain_list(self):
        name, entries = parse_allowlist(ENTRIES)
        assert name is None
        assert len(entries) == 4
        assert entries[1].minter == "0x8CA40d25a725CB131fA253b7AEF87a01eBD3E29e"
        assert entries[1].price == 10**16

    def test_named_object(self):
        name, entries = parse_allowlist({"name": "presale", "entries": ENTRIES[:1]})
        assert name == "presale"
        assert len(entries) == 1

    @pytest.mark.parametrize("data", [{"name": "x"}, "entries", 42])
    def test_bad_shape(self, data):
        with pytest.raises(BundleError):
            parse_allowlist(data)

    def test_invalid_entry(self):
        with pytest.raises(InvalidEntryError):
            parse_allowlist([{"minter": "0x123", "maxCount": 1, "price": "1"}])


class TestBundle:
    def test_output_shape(self, bundle):
        assert bundle["name"] == "main"
        assert [e["minter"] for e in bundle["entries"]][1] == "0x8CA40d25a725CB131fA253b7AEF87a01eBD3E29e"
        assert all(e["price"].isdigit() for e in bundle["entries"])

    def test_verify_bundle(self, bundle):
        results = verify_bundle(bundle)
        assert [ok for _, _, ok in results] == [True] * 4

    def test_verify_detects_edited_terms(self, bundle):
        bundle["entries"][0]["maxCount"] = 50
        bundle["entries"][0].pop("hash")
        results = verify_bundle(bundle)
        assert results[0][2] is False
        assert all(ok for _, _, ok in results[1:])

    def test_verify_detects_stale_hash(self, bundle):
        bundle["entries"][2]["price"] = "1"
        assert verify_bundle(bundle)[2][2] is False

    @pytest.mark.parametrize("proof", [None, "0x" + "00" * 32, 7])
    def test_verify_rejects_non_list_proof(self, bundle, proof):
        bundle["entries"][0]["proof"] = proof
        with pytest.raises(BundleError):
            verify_bundle(bundle)

    def test_verify_bad_bundle(self):
        with pytest.raises(BundleError):
            verify_bundle({"entries": []})

    def test_find_entries_any_case(self, bundle):
        matches = find_entries(bundle, "0x07966725A7928083BA85E75276518561D0C28B19")
        assert len(matches) == 1
        assert matches[0]["maxCount"] == 5

    def test_find_entries_absent(self, bundle):
        assert find_entries(bundle, "0x" + "1" * 40) == []

    def test_render_solidity(self):
        _, entries = parse_allowlist(ENTRIES)
        tree = build_tree(entries)
        text = render_solidity(tree)
        assert f"bytes32 ROOT = 0x{tree.root.hex()};" in text
        assert "bytes32[] memory PROOF_0_07966725A7928083BA85E75276518561D0C28B19 = new bytes32[](2);" in text
        for p in tree.proofs[3]:
            assert f"0x{p.hex()};" in text


class TestSolidityFile:
    def test_named_sets(self):
        _, entries = parse_allowlist(ENTRIES)
        first = build_tree(entries, name="test-4-entries")
        second = build_tree(entries[:1], name="test-single")
        text = render_solidity_file([first, second])
        assert "contract MerkleData {" in text
        assert f'sets["test-4-entries"].root = 0x{first.root.hex()};' in text
        assert f'sets["test-single"].root = 0x{second.root.hex()};' in text
        assert text.count("entries.push(MerkleEntry(") == 5
        assert "proof = new bytes32[](0);" in text
        for p in first.proofs[2]:
            assert f"= 0x{p.hex()};" in text

    def test_unnamed_set_and_contract_name(self):
        _, entries = parse_allowlist(ENTRIES[:2])
        text = render_solidity_file([build_tree(entries)], contract="Fixtures")
        assert "contract Fixtures {" in text
        assert 'sets["set-0"]' in text


class TestCli:
    def test_generate_writes_bundle(self, allowlist_file, tmp_path, capsys):
        assert main(["generate", str(allowlist_file)]) == 0
        out = capsys.readouterr().out
        data = json.loads((tmp_path / "gen.json").read_text())
        assert f"MERKLE ROOT: {data['root']}" in out
        assert data["name"] == "main"
        assert len(data["entries"]) == 4

    def test_generate_output_and_name(self, allowlist_file, tmp_path, capsys):
        output = tmp_path / "out" / "bundle.json"
        output.parent.mkdir()
        assert main(["generate", str(allowlist_file), "-o", str(output), "--name", "presale", "--solidity"]) == 0
        assert "// Solidity" in capsys.readouterr().out
        assert json.loads(output.read_text())["name"] == "presale"

    def test_verify_ok(self, bundle, tmp_path, capsys):
        path = tmp_path / "gen.json"
        path.write_text(json.dumps(bundle))
        assert main(["verify", str(path)]) == 0
        assert "4/4 proofs valid" in capsys.readouterr().out

    def test_verify_failure_exit_code(self, bundle, tmp_path, capsys):
        bundle["entries"][1]["proof"] = bundle["entries"][0]["proof"]
        path = tmp_path / "gen.json"
        path.write_text(json.dumps(bundle))
        assert main(["verify", str(path)]) == 1
        assert "is allowlisted: False" in capsys.readouterr().out

    def test_proof_lookup(self, bundle, tmp_path, capsys):
        path = tmp_path / "gen.json"
        path.write_text(json.dumps(bundle))
        assert main(["proof", str(path), ENTRIES[2]["minter"].lower()]) == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed[0]["proof"] == bundle["entries"][2]["proof"]

    def test_proof_lookup_absent(self, bundle, tmp_path, capsys):
        path = tmp_path / "gen.json"
        path.write_text(json.dumps(bundle))
        assert main(["proof", str(path), "0x" + "1" * 40]) == 1
        assert "NOT in the allowlist" in capsys.readouterr().out

    def test_empty_allowlist_error(self, tmp_path, capsys):
        path = tmp_path / "empty.json"
        path.write_text("[]")
        assert main(["generate", str(path)]) == 2
        assert "Empty allowlist" in capsys.readouterr().err

    def test_invalid_json_error(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{")
        assert main(["generate", str(path)]) == 2
        assert "invalid JSON" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main(["verify", str(tmp_path / "nope.json")]) == 2
        assert "error:" in capsys.readouterr().err

    def test_price_ether_overflow_exit_code(self, tmp_path, capsys):
        path = tmp_path / "allowlist.json"
        path.write_text(json.dumps([{"minter": ENTRIES[0]["minter"], "maxCount": 1, "priceEther": "1e60"}]))
        assert main(["generate", str(path)]) == 2
        assert "priceEther" in capsys.readouterr().err
        assert not (tmp_path / "gen.json").exists()

    def test_verify_null_proof_exit_code(self, bundle, tmp_path, capsys):
        bundle["entries"][0]["proof"] = None
        path = tmp_path / "gen.json"
        path.write_text(json.dumps(bundle))
        assert main(["verify", str(path)]) == 2
        assert "'proof' must be a list" in capsys.readouterr().err

    def test_generate_solidity_out(self, allowlist_file, tmp_path):
        sol = tmp_path / "MerkleData.sol"
        assert main(["generate", str(allowlist_file), "--solidity-out", str(sol)]) == 0
        data = json.loads((tmp_path / "gen.json").read_text())
        text = sol.read_text()
        assert "contract MerkleData {" in text
        assert f'sets["main"].root = {data["root"]};' in text

    def test_solidity_command_multiple_sets(self, allowlist_file, tmp_path, capsys):
        second = tmp_path / "prices.json"
        second.write_text(json.dumps(ENTRIES[2:]))
        assert main(["solidity", str(allowlist_file), str(second)]) == 0
        out = capsys.readouterr().out
        text = (tmp_path / "MerkleData.sol").read_text()
        assert 'sets["main"]' in text
        assert 'sets["prices"]' in text
        assert "main: 0x" in out and "prices: 0x" in out
