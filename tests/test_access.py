from types import SimpleNamespace

import pytest

from blog_api.access import Operation, can_access, is_owner

POST = SimpleNamespace(author_id="alice")


def test_public_read_needs_no_identity():
    assert can_access(None, POST, Operation.READ_PUBLIC)
    assert can_access("bob", POST, Operation.READ_PUBLIC)


@pytest.mark.parametrize("operation", [Operation.READ_PRIVATE, Operation.MODIFY, Operation.DELETE])
def test_owner_only_operations(operation):
    assert can_access("alice", POST, operation)
    assert not can_access("bob", POST, operation)
    assert not can_access(None, POST, operation)


def test_legacy_post_without_author_has_no_owner():
    legacy = SimpleNamespace(author_id=None)
    assert not is_owner(None, legacy)
    assert not can_access(None, legacy, Operation.MODIFY)
