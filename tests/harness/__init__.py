"""
tests.harness
=============

Shared test helpers: an in-memory node that speaks the NodeApi interface and
small factories for ids, digests and references.

    from tests.harness.fake_node import FakeNode, object_id, fake_digest
"""
