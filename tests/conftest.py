import pytest

from fakes import FakeAdapter, fixture_adapter


@pytest.fixture
def seeded_adapter():
    """Ten users and five posts, like a freshly seeded small keyspace."""
    return fixture_adapter(num_users=10, num_posts=5)


@pytest.fixture
def empty_adapter():
    return FakeAdapter()
