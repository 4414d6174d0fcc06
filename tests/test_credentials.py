"""Tests for endpoint, credential and cache record types."""

import hashlib

import pytest
from hypothesis import given
from hypothesis import strategies as st

from deploy_io.auth.credentials import (
    Credential,
    Endpoint,
    format_cached_credential,
    parse_cached_credential,
)
from deploy_io.errors import CacheCorruptError, StorageError

_username_st = st.text(
    alphabet=st.characters(exclude_characters=":\r\n", exclude_categories=("Cs",)),
    max_size=30,
)
_secret_st = st.text(
    alphabet=st.characters(exclude_characters="\r\n", exclude_categories=("Cs",)),
    min_size=1,
    max_size=60,
)
_url_st = st.text(alphabet=st.characters(codec="utf-8"), max_size=80)


class TestEndpoint:
    def test_cache_key_is_md5_of_base_url(self):
        endpoint = Endpoint("https://api.example.test")
        expected = hashlib.md5(b"https://api.example.test").hexdigest()
        assert endpoint.cache_key == expected

    def test_cache_key_is_stable(self):
        assert Endpoint("http://a").cache_key == Endpoint("http://a").cache_key

    def test_cache_key_distinguishes_urls(self):
        assert Endpoint("http://a").cache_key != Endpoint("http://a/").cache_key

    def test_url_join(self):
        endpoint = Endpoint("http://api.test/")
        assert endpoint.url("/hosts") == "http://api.test/hosts"
        assert endpoint.url("login") == "http://api.test/login"

    @given(a=_url_st, b=_url_st)
    def test_cache_key_is_filename_safe_and_injective(self, a, b):
        key = Endpoint(a).cache_key
        assert len(key) == 32
        assert set(key) <= set("0123456789abcdef")
        if a != b:
            assert key != Endpoint(b).cache_key

    def test_frozen(self):
        endpoint = Endpoint("http://a")
        with pytest.raises(AttributeError):
            endpoint.base_url = "http://b"


class TestCredential:
    def test_repr_masks_secret(self):
        cred = Credential(username="alice", secret_key="abc123456789")
        assert "abc123456789" not in repr(cred)
        assert "secret_key='***'" in repr(cred)
        assert "alice" in repr(cred)

    @pytest.mark.parametrize("secret_key", ["x", "xyz", "abcd", "abc123"])
    def test_short_keys_fully_masked(self, secret_key):
        cred = Credential(username="bob", secret_key=secret_key)
        assert repr(cred) == "Credential(username='bob', secret_key='***')"
        assert secret_key not in str(cred).replace("bob", "")

    def test_str_masks_secret(self):
        cred = Credential(username="alice", secret_key="abc123456789")
        assert "abc123456789" not in str(cred)

    def test_basic_auth(self):
        assert Credential("bob", "xyz").basic_auth() == ("bob", "xyz")


class TestParseCachedCredential:
    def test_simple(self):
        assert parse_cached_credential("bob:xyz") == Credential("bob", "xyz")

    def test_splits_on_first_colon(self):
        cred = parse_cached_credential("bob:xyz:with:colons")
        assert cred.username == "bob"
        assert cred.secret_key == "xyz:with:colons"

    def test_empty_username(self):
        assert parse_cached_credential(":xyz") == Credential("", "xyz")

    def test_trailing_newline_ignored(self):
        assert parse_cached_credential("bob:xyz\n") == Credential("bob", "xyz")
        assert parse_cached_credential("bob:xyz\r\n") == Credential("bob", "xyz")

    def test_missing_delimiter(self):
        with pytest.raises(CacheCorruptError, match="delimiter"):
            parse_cached_credential("garbage")

    def test_empty_secret(self):
        with pytest.raises(CacheCorruptError, match="empty secret"):
            parse_cached_credential("bob:")

    def test_empty_file(self):
        with pytest.raises(CacheCorruptError):
            parse_cached_credential("")


class TestFormatCachedCredential:
    def test_format(self):
        assert format_cached_credential(Credential("alice", "abc123")) == "alice:abc123"

    def test_username_with_colon_rejected(self):
        with pytest.raises(StorageError, match="contains ':'"):
            format_cached_credential(Credential("a:b", "abc"))

    def test_empty_secret_rejected(self):
        with pytest.raises(StorageError):
            format_cached_credential(Credential("alice", ""))

    def test_line_break_rejected(self):
        with pytest.raises(StorageError, match="line break"):
            format_cached_credential(Credential("alice", "abc\ndef"))

    @given(username=_username_st, secret_key=_secret_st)
    def test_format_then_parse_preserves_credential(self, username, secret_key):
        cred = Credential(username=username, secret_key=secret_key)
        assert parse_cached_credential(format_cached_credential(cred)) == cred
