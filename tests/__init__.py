"""Unit tests for the legal translation purity pipeline.

Tests use pytest with asyncio support. Oracles are replaced by scripted fakes and HTTP/SDK calls
are mocked via monkeypatch, so no test touches the network.
"""
