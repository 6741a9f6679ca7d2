"""Shared fixtures for x402-scaffold tests."""

import stat
from pathlib import Path

import pytest

from scaffolding.config import CacheConfig, Config

VALID_MANIFEST = """
[template]
name = "Axum starter"
description = "An x402 payment server built on axum"
version = "0.1.0"
authors = ["x402 Community"]
repository = "https://github.com/x402/axum-starter"
tags = ["axum", "server"]

[parameters.project_name]
type = "string"
default = "x402-app"
pattern = "^[a-z][a-z0-9-]*$"

[parameters.use_docker]
type = "boolean"
default = true

[parameters.database]
type = "enum"
enum = ["postgres", "sqlite"]
default = "postgres"
"""

# Minimal 1x1 PNG; contains bytes that are not valid UTF-8.
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89{{ project_name }}\xff\xfe"
)


def make_manifest(**template_overrides: str) -> str:
    """VALID_MANIFEST with [template] string fields replaced."""
    text = VALID_MANIFEST
    defaults = {
        "name": "Axum starter",
        "description": "An x402 payment server built on axum",
        "version": "0.1.0",
        "repository": "https://github.com/x402/axum-starter",
    }
    for key, value in template_overrides.items():
        text = text.replace(f'{key} = "{defaults[key]}"', f'{key} = "{value}"', 1)
    return text


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A local template tree with text, binary, excluded and executable entries."""
    root = tmp_path / "template"
    root.mkdir()

    (root / "x402.toml").write_text(VALID_MANIFEST)
    (root / "README.md").write_text("# {{ project_name }}\n\nBy {{ author }}\n")
    (root / "Dockerfile.template").write_text(
        "{% if use_docker %}FROM rust:1.75\n{% endif %}"
    )
    (root / "config.toml").write_text('database = "{{ database }}"\n')
    (root / "logo.png").write_bytes(PNG_BYTES)

    git_dir = root / ".git"
    git_dir.mkdir()
    (git_dir / "HEAD").write_text("ref: refs/heads/main\n")

    scripts = root / "scripts"
    scripts.mkdir()
    run_script = scripts / "run.sh"
    run_script.write_text("#!/bin/sh\necho {{ project_name }}\n")
    run_script.chmod(run_script.stat().st_mode | stat.S_IXUSR)

    return root


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default config with the cache inside tmp_path."""
    return Config(cache=CacheConfig(cache_dir=str(tmp_path / "cache")))
