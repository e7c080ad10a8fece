"""Tests for S3 driver config resolution."""

import os
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from config.s3_cfg import DEFAULT_REGION, S3DriverConfig

_CLEAN_ENV = {"PATH": os.environ.get("PATH", "")}


class TestFromOptions:
    @patch.dict(os.environ, _CLEAN_ENV, clear=True)
    def test_defaults(self):
        cfg = S3DriverConfig.from_options({"bucket": "b"})
        assert cfg == S3DriverConfig(bucket="b", root="", endpoint=None, region=DEFAULT_REGION, key=None, secret=None)

    @patch.dict(os.environ, {
        "S3_BUCKET_NAME": "env-bucket",
        "S3_ROOT": "env-root",
        "S3_ENDPOINT_URL": "http://env:9000",
        "S3_REGION_NAME": "env-region",
        "S3_ACCESS_KEY_ID": "env-key",
        "S3_SECRET_ACCESS_KEY": "env-secret",
    }, clear=True)
    def test_env_fallback(self):
        cfg = S3DriverConfig.from_options()
        assert cfg.bucket == "env-bucket"
        assert cfg.root == "env-root"
        assert cfg.endpoint == "http://env:9000"
        assert cfg.region == "env-region"
        assert cfg.key == "env-key"
        assert cfg.secret == "env-secret"

    @patch.dict(os.environ, {"S3_BUCKET_NAME": "env-bucket", "S3_ACCESS_KEY_ID": "env-key"}, clear=True)
    def test_options_win(self):
        cfg = S3DriverConfig.from_options({"bucket": "opt", "key": "opt-key"}, region="kw-region")
        assert cfg.bucket == "opt"
        assert cfg.key == "opt-key"
        assert cfg.region == "kw-region"

    @patch.dict(os.environ, {"S3_ACCESS_KEY_ID": ""}, clear=True)
    def test_empty_means_unset(self):
        cfg = S3DriverConfig.from_options({"bucket": "b", "key": ""})
        assert cfg.key is None

    @patch.dict(os.environ, _CLEAN_ENV, clear=True)
    def test_bucket_required(self):
        with pytest.raises(ValueError, match="Bucket name required"):
            S3DriverConfig.from_options({"root": "x"})

    def test_frozen(self):
        cfg = S3DriverConfig(bucket="b")
        with pytest.raises(FrozenInstanceError):
            cfg.bucket = "other"

    def test_repr_hides_secret(self):
        assert "topsecret" not in repr(S3DriverConfig(bucket="b", key="k", secret="topsecret"))
