import pytest

from merkle_allowlist.entry import make_entry

ONE_ETHER = 10**18


def addr(suffix: str) -> str:
    return "0x" + "a" * (40 - len(suffix)) + suffix


@pytest.fixture
def scenario_entries():
    return [
        make_entry(addr("1"), 5, ONE_ETHER // 100),
        make_entry(addr("2"), 5, ONE_ETHER // 100),
        make_entry(addr("3"), 3, ONE_ETHER // 10),
    ]


@pytest.fixture
def absent_entry():
    return make_entry(addr("4"), 5, ONE_ETHER // 100)
