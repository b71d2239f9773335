"""Tests for secure output writing, output path derivation, and generate()."""

from __future__ import annotations

import stat
import subprocess
from pathlib import Path

import pytest

from lkr.errors import TemplateError
from lkr.keys import KeyStore
from lkr.template.output import check_gitignore, derive_output_path, write_secure
from lkr.template.render import generate


class TestWriteSecure:
    def test_permissions(self, tmp_path: Path):
        path = tmp_path / "test-output.env"
        write_secure(path, "SECRET=value\n")
        assert path.read_text() == "SECRET=value\n"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_overwrite_tightens_permissions(self, tmp_path: Path):
        path = tmp_path / ".env"
        path.write_text("old")
        path.chmod(0o644)
        write_secure(path, "new")
        assert path.read_text() == "new"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path):
        write_secure(tmp_path / "out", "x")
        assert [p.name for p in tmp_path.iterdir()] == ["out"]

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(TemplateError, match="Cannot write"):
            write_secure(tmp_path / "missing" / "out", "x")

    def test_rename_failure_cleans_up(self, tmp_path: Path):
        target = tmp_path / "is-a-dir"
        target.mkdir()
        (target / "child").write_text("keep")
        with pytest.raises(TemplateError):
            write_secure(target, "x")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["is-a-dir"]


class TestDeriveOutputPath:
    def test_example_suffix(self, tmp_path: Path):
        assert derive_output_path(tmp_path / ".env.example") == tmp_path / ".env"

    def test_template_suffix(self):
        assert derive_output_path(Path("conf/.mcp.json.template")) == Path("conf/.mcp.json")

    def test_unknown_suffix(self):
        with pytest.raises(TemplateError, match="-o"):
            derive_output_path("config.json")

    def test_bare_suffix_rejected(self):
        with pytest.raises(TemplateError):
            derive_output_path(".example")


class TestCheckGitignore:
    def test_outside_git_repo(self, tmp_path: Path):
        assert check_gitignore(tmp_path / ".env") is None

    def test_inside_git_repo(self, tmp_path: Path):
        try:
            subprocess.run(["git", "init", "-q", str(tmp_path)], check=True)
        except (OSError, subprocess.CalledProcessError):
            pytest.skip("git not available")
        (tmp_path / ".gitignore").write_text(".env\n")
        assert check_gitignore(tmp_path / ".env") is True
        assert check_gitignore(tmp_path / "config.json") is False


class TestGenerate:
    def test_env_template(self, tmp_path: Path, seeded_store: KeyStore):
        template = tmp_path / ".env.example"
        template.write_text("OPENAI_API_KEY=x\nDEBUG=1\n")
        output = tmp_path / ".env"

        result = generate(seeded_store, template, output)

        assert output.read_text() == "OPENAI_API_KEY=sk-test-openai-key-12345678\nDEBUG=1\n"
        assert stat.S_IMODE(output.stat().st_mode) == 0o600
        assert len(result.resolved) == 1
        assert len(result.unresolved) == 1

    def test_missing_template(self, tmp_path: Path, seeded_store: KeyStore):
        with pytest.raises(TemplateError, match="Cannot read template"):
            generate(seeded_store, tmp_path / "nope.example", tmp_path / "nope")

    def test_admin_placeholder_writes_nothing(self, tmp_path: Path, seeded_store: KeyStore):
        template = tmp_path / "cfg.json.template"
        template.write_text('{"k": "{{lkr:openai:admin}}"}')
        output = tmp_path / "cfg.json"
        with pytest.raises(TemplateError):
            generate(seeded_store, template, output)
        assert not output.exists()
