"""Tests for the project generator, including the end-to-end create flow."""

import io
import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from scaffolding.collector import DefaultValueSource, ScriptedValueSource
from scaffolding.discovery import TemplateInfo
from scaffolding.errors import (
    FileSystemError,
    MalformedManifest,
    RenderError,
    TemplateNotFound,
    ValidationError,
)
from scaffolding.generator import INITIAL_COMMIT_MESSAGE, ProjectGenerator, validate_project_name

AXUM = TemplateInfo(
    name="Axum starter",
    url="https://github.com/x402/axum-starter",
    owner="x402",
    repo="axum-starter",
)


@pytest.fixture(autouse=True)
def fixed_author():
    """Keep author detection from calling git while subprocess.run is patched."""
    with patch("scaffolding.collector.detect_author", return_value="Ada"):
        yield


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def discovery():
    return MagicMock()


@pytest.fixture
def downloader():
    return MagicMock()


@pytest.fixture
def make_generator(config, output, discovery, downloader):
    def factory(value_source=None, **kwargs):
        return ProjectGenerator(
            config,
            value_source or DefaultValueSource(),
            console=Console(file=output, width=120),
            discovery=discovery,
            downloader=downloader,
            **kwargs,
        )

    return factory


class TestCreate:
    def test_end_to_end_with_defaults(self, make_generator, template_dir, tmp_path):
        project = make_generator().create(template_dir, "my-app", tmp_path / "projects", init_git=False)

        assert project == tmp_path / "projects" / "my-app"
        # The manifest declares project_name, so its default wins over the built-in.
        assert "x402-app" in (project / "README.md").read_text()
        assert (project / "Dockerfile.template").read_text().strip()
        assert not (project / "x402.toml").exists()
        assert not (project / ".git").exists()

    def test_boolean_false_gates_content(self, make_generator, template_dir, tmp_path):
        source = ScriptedValueSource({"use_docker": "no"})
        project = make_generator(source).create(template_dir, "my-app", tmp_path, init_git=False)
        assert (project / "Dockerfile.template").read_text() == ""

    def test_preset_values(self, make_generator, template_dir, tmp_path):
        project = make_generator().create(
            template_dir,
            "my-app",
            tmp_path,
            init_git=False,
            values={"database": "sqlite", "author": "Grace"},
        )
        assert (project / "config.toml").read_text() == 'database = "sqlite"\n'
        assert "By Grace" in (project / "README.md").read_text()

    def test_invalid_preset_fails_non_interactive(self, make_generator, template_dir, tmp_path):
        with pytest.raises(ValidationError) as exc_info:
            make_generator().create(
                template_dir, "my-app", tmp_path, init_git=False, values={"database": "mysql"}
            )
        assert exc_info.value.field == "parameters.database"
        assert not (tmp_path / "my-app").exists()

    def test_existing_directory(self, make_generator, template_dir, tmp_path):
        (tmp_path / "my-app").mkdir()
        with pytest.raises(FileSystemError, match="already exists"):
            make_generator().create(template_dir, "my-app", tmp_path, init_git=False)

    @pytest.mark.parametrize("name", ["", "my app", "../escape", "app!"])
    def test_invalid_project_name(self, make_generator, template_dir, tmp_path, name):
        with pytest.raises(ValidationError):
            make_generator().create(template_dir, name, tmp_path, init_git=False)

    def test_missing_manifest(self, make_generator, template_dir, tmp_path):
        (template_dir / "x402.toml").unlink()
        with pytest.raises(MalformedManifest, match="missing x402.toml"):
            make_generator().create(template_dir, "my-app", tmp_path / "out", init_git=False)
        assert not (tmp_path / "out" / "my-app").exists()

    def test_render_failure_cleans_up(self, make_generator, template_dir, tmp_path):
        (template_dir / "zz_broken.txt").write_text("{% if %}")
        with pytest.raises(RenderError):
            make_generator().create(template_dir, "my-app", tmp_path / "out", init_git=False)
        assert not (tmp_path / "out" / "my-app").exists()

    def test_remote_template(self, make_generator, downloader, template_dir, tmp_path):
        def fake_download(url, dest, branch="main"):
            shutil.copytree(template_dir, dest, dirs_exist_ok=True)
            return dest

        downloader.download.side_effect = fake_download

        project = make_generator().create(AXUM, "my-app", tmp_path / "out", init_git=False)

        assert (project / "README.md").exists()
        downloader.download.assert_called_once()
        assert downloader.download.call_args.args[0] == AXUM.url
        assert downloader.download.call_args.kwargs["branch"] == "main"


class TestGitInit:
    def test_runs_git_commands(self, make_generator, template_dir, tmp_path):
        with patch("scaffolding.generator.subprocess.run") as mock_run:
            project = make_generator().create(template_dir, "my-app", tmp_path)

        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands == [
            ["git", "init"],
            ["git", "add", "."],
            ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
        ]
        assert all(c.kwargs["cwd"] == project for c in mock_run.call_args_list)

    def test_git_missing_is_a_warning(self, make_generator, template_dir, tmp_path, output):
        with patch("scaffolding.generator.subprocess.run", side_effect=FileNotFoundError):
            project = make_generator().create(template_dir, "my-app", tmp_path)
        assert project.exists()
        assert "Git not found" in output.getvalue()

    def test_git_failure_is_a_warning(self, make_generator, template_dir, tmp_path, output):
        error = subprocess.CalledProcessError(128, ["git", "commit"], stderr=b"no identity")
        with patch("scaffolding.generator.subprocess.run", side_effect=error):
            project = make_generator().create(template_dir, "my-app", tmp_path)
        assert project.exists()
        assert "Git initialization failed" in output.getvalue()


class TestResolveTemplate:
    def test_local_directory(self, make_generator, template_dir):
        assert make_generator().resolve_template(str(template_dir)) == template_dir

    def test_shorthand(self, make_generator, discovery):
        discovery.get_template.return_value = AXUM
        assert make_generator().resolve_template("x402/axum-starter") == AXUM
        discovery.get_template.assert_called_once_with("x402", "axum-starter")

    def test_name_match(self, make_generator, discovery):
        discovery.discover.return_value = [AXUM]
        assert make_generator().resolve_template("AXUM-STARTER") == AXUM
        assert make_generator().resolve_template("axum starter") == AXUM

    def test_unknown_name(self, make_generator, discovery):
        discovery.discover.return_value = [AXUM]
        with pytest.raises(TemplateNotFound):
            make_generator().resolve_template("nope")


class TestListTemplates:
    def test_uses_cache(self, make_generator, discovery):
        discovery.discover.return_value = [AXUM]
        generator = make_generator()

        assert generator.list_templates() == [AXUM]
        assert generator.list_templates() == [AXUM]
        assert discovery.discover.call_count == 1

    def test_refresh_bypasses_cache(self, make_generator, discovery):
        discovery.discover.return_value = [AXUM]
        generator = make_generator()

        generator.list_templates()
        generator.list_templates(refresh=True)
        assert discovery.discover.call_count == 2


@pytest.mark.parametrize("name", ["my-app", "my_app", "App2"])
def test_valid_project_names(name):
    validate_project_name(name)


def test_project_name_error_field():
    with pytest.raises(ValidationError) as exc_info:
        validate_project_name("bad name")
    assert exc_info.value.field == "project_name"
