"""Tests for x402.toml parsing and validation."""

from pathlib import Path

import pytest

from conftest import VALID_MANIFEST, make_manifest
from scaffolding.errors import FileSystemError, MalformedManifest, ValidationError
from scaffolding.manifest import (
    is_semver,
    load_and_validate,
    parse_manifest,
    validate_manifest,
)
from scaffolding.parameters import BooleanParameter, EnumParameter, StringParameter


def write_manifest(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "x402.toml"
    path.write_text(text)
    return path


def validation_error(tmp_path: Path, text: str) -> ValidationError:
    with pytest.raises(ValidationError) as exc_info:
        load_and_validate(write_manifest(tmp_path, text))
    return exc_info.value


class TestParseManifest:
    def test_valid_manifest(self):
        manifest = parse_manifest(VALID_MANIFEST)

        assert manifest.metadata.name == "Axum starter"
        assert manifest.metadata.authors == ("x402 Community",)
        assert manifest.metadata.tags == ("axum", "server")
        assert manifest.files is None
        assert list(manifest.parameters) == ["project_name", "use_docker", "database"]
        assert isinstance(manifest.parameters["project_name"], StringParameter)
        assert isinstance(manifest.parameters["use_docker"], BooleanParameter)
        assert isinstance(manifest.parameters["database"], EnumParameter)

    def test_invalid_toml(self):
        with pytest.raises(MalformedManifest, match="Invalid TOML"):
            parse_manifest("[template\nname = ")

    def test_missing_template_table(self):
        with pytest.raises(MalformedManifest, match="Missing \\[template\\] table"):
            parse_manifest('[parameters.x]\ntype = "string"\ndefault = "a"\n')

    def test_missing_required_field(self):
        text = VALID_MANIFEST.replace('version = "0.1.0"\n', "")
        with pytest.raises(MalformedManifest, match="template.version"):
            parse_manifest(text)

    def test_files_section(self):
        manifest = parse_manifest(VALID_MANIFEST + '\n[files]\nexclude = ["target/**"]\n')
        assert manifest.files.include == ()
        assert manifest.files.exclude == ("target/**",)

    def test_optional_versions(self):
        text = VALID_MANIFEST.replace(
            'tags = ["axum", "server"]',
            'tags = ["axum", "server"]\nmin_rust_version = "1.75.0"',
        )
        assert parse_manifest(text).metadata.min_rust_version == "1.75.0"


class TestValidateManifest:
    def test_valid(self, tmp_path):
        manifest = load_and_validate(write_manifest(tmp_path, VALID_MANIFEST))
        assert manifest.metadata.version == "0.1.0"

    def test_idempotent(self, tmp_path):
        path = write_manifest(tmp_path, make_manifest(version="1.0"))
        messages = []
        for _ in range(3):
            with pytest.raises(ValidationError) as exc_info:
                load_and_validate(path)
            messages.append(str(exc_info.value))
        assert len(set(messages)) == 1

    def test_empty_name(self, tmp_path):
        error = validation_error(tmp_path, make_manifest(name=""))
        assert error.field == "template.name"
        assert error.message == "Template name is required"

    def test_name_too_long(self, tmp_path):
        error = validation_error(tmp_path, make_manifest(name="x" * 101))
        assert error.message == "Template name must be 100 characters or less"

    def test_name_at_limit(self, tmp_path):
        load_and_validate(write_manifest(tmp_path, make_manifest(name="x" * 100)))

    @pytest.mark.parametrize("description", ["too short", "x" * 201])
    def test_description_length(self, tmp_path, description):
        error = validation_error(tmp_path, make_manifest(description=description))
        assert error.field == "template.description"
        assert error.message == "Description must be 10-200 characters"

    @pytest.mark.parametrize("version", ["1.0", "v1.0.0", "01.0.0", "1.0.0.0", ""])
    def test_invalid_version(self, tmp_path, version):
        error = validation_error(tmp_path, make_manifest(version=version))
        assert error.field == "template.version"
        assert "Invalid semantic version" in error.message

    def test_no_authors(self, tmp_path):
        text = VALID_MANIFEST.replace('authors = ["x402 Community"]', "authors = []")
        error = validation_error(tmp_path, text)
        assert error.field == "template.authors"
        assert error.message == "At least one author is required"

    @pytest.mark.parametrize(
        "repository",
        ["http://github.com/x402/axum-starter", "https://gitlab.com/x402/axum-starter"],
    )
    def test_repository_prefix(self, tmp_path, repository):
        error = validation_error(tmp_path, make_manifest(repository=repository))
        assert error.field == "template.repository"

    def test_custom_repository_prefix(self, tmp_path):
        path = write_manifest(tmp_path, make_manifest(repository="https://git.example.com/a/b"))
        load_and_validate(path, repository_prefix="https://git.example.com/")

    def test_pattern_default_match(self, tmp_path):
        manifest = parse_manifest(VALID_MANIFEST)
        validate_manifest(manifest)

    def test_pattern_default_mismatch(self, tmp_path):
        text = VALID_MANIFEST.replace('default = "x402-app"', 'default = "My-App"')
        error = validation_error(tmp_path, text)
        assert error.field == "parameters.project_name.default"

    def test_pattern_invalid_regex(self, tmp_path):
        text = VALID_MANIFEST.replace('pattern = "^[a-z][a-z0-9-]*$"', 'pattern = "[unclosed"')
        error = validation_error(tmp_path, text)
        assert error.field == "parameters.project_name.pattern"

    def test_enum_default_not_member(self, tmp_path):
        text = VALID_MANIFEST.replace('default = "postgres"', 'default = "mysql"')
        error = validation_error(tmp_path, text)
        assert error.field == "parameters.database.default"
        assert error.message == "Default value 'mysql' not in enum choices"

    def test_enum_empty_choices(self, tmp_path):
        text = VALID_MANIFEST.replace('enum = ["postgres", "sqlite"]', "enum = []")
        error = validation_error(tmp_path, text)
        assert error.field == "parameters.database.enum"
        assert error.message == "Enum must have at least one choice"

    def test_empty_glob(self, tmp_path):
        error = validation_error(tmp_path, VALID_MANIFEST + '\n[files]\ninclude = ["src/**", ""]\n')
        assert error.field == "files.include"
        assert error.message == "Glob pattern cannot be empty"

    def test_min_versions_checked(self, tmp_path):
        text = VALID_MANIFEST.replace(
            'tags = ["axum", "server"]',
            'tags = ["axum", "server"]\nmin_x402_cli_version = "latest"',
        )
        error = validation_error(tmp_path, text)
        assert error.field == "template.min_x402_cli_version"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileSystemError):
            load_and_validate(tmp_path / "x402.toml")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("0.1.0", True),
        ("1.2.3-alpha.1", True),
        ("1.2.3+build.5", True),
        ("1.2", False),
        ("1.02.3", False),
        ("1.2.3-", False),
    ],
)
def test_is_semver(value, expected):
    assert is_semver(value) is expected
