import pytest

from .factories import make_snapshot


@pytest.fixture
def snapshot():
    """One active adult tier at 100 and no other rules."""
    return make_snapshot()
