"""Tests for the TemplateCompiler file cache."""

import logging
import os

import pytest

from viewc import TemplateCompiler, TemplateNotFoundError


@pytest.fixture
def page(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<h1>{{ title }}</h1>")
    return path


def test_compile_writes_cache_file(tmp_path, page):
    compiler = TemplateCompiler(cache_dir=tmp_path / "cache")

    compiled = compiler.compile(page)

    assert compiled == compiler.cache_path(page)
    assert compiled.suffix == ".compiled"
    assert compiled.read_text() == "<h1><?py= self.e(ctx.title) ?></h1>"


def test_cache_path_is_stable_per_template(tmp_path, page):
    compiler = TemplateCompiler(cache_dir=tmp_path)

    assert compiler.cache_path(page) == compiler.cache_path(page)
    assert compiler.cache_path(page) != compiler.cache_path(tmp_path / "other.html")


def test_missing_template(tmp_path):
    with pytest.raises(TemplateNotFoundError) as excinfo:
        TemplateCompiler(cache_dir=tmp_path).compile(tmp_path / "nope.html")

    assert excinfo.value.name.endswith("nope.html")


class TestRecompilation:
    def test_auto_reload_always_recompiles(self, tmp_path, page):
        compiler = TemplateCompiler(cache_dir=tmp_path / "cache")
        compiler.compile(page)

        assert compiler.needs_recompilation(page)

    def test_fresh_cache_is_reused(self, tmp_path, page):
        compiler = TemplateCompiler(cache_dir=tmp_path / "cache", auto_reload=False)

        assert compiler.needs_recompilation(page)
        compiler.compile(page)
        assert not compiler.needs_recompilation(page)

    def test_newer_template_invalidates_cache(self, tmp_path, page):
        compiler = TemplateCompiler(cache_dir=tmp_path / "cache", auto_reload=False)
        compiled = compiler.compile(page)

        later = compiled.stat().st_mtime + 10
        os.utime(page, (later, later))

        assert compiler.needs_recompilation(page)


def test_diagnostics_are_logged(tmp_path, caplog):
    page = tmp_path / "broken.html"
    page.write_text("ok\n{% include 'x' %}")

    with caplog.at_level(logging.INFO, logger="viewc"):
        TemplateCompiler(cache_dir=tmp_path / "cache").compile(page)

    assert f"{page}:2: Unsupported control tag at line 2: include" in caplog.text


def test_clear_cache(tmp_path, page):
    compiler = TemplateCompiler(cache_dir=tmp_path / "cache")
    compiler.compile(page)
    (tmp_path / "cache" / "keep.txt").write_text("x")

    assert compiler.clear_cache() == 1
    assert compiler.clear_cache() == 0
    assert (tmp_path / "cache" / "keep.txt").exists()


def test_clear_missing_cache_dir(tmp_path):
    assert TemplateCompiler(cache_dir=tmp_path / "absent").clear_cache() == 0
