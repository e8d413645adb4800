"""Tests for TemplateStore lookup, caching and mandatory loads."""

import asyncio
import logging

import pytest

from srswriter.config.assembly_config import AssemblySettings
from srswriter.prompts.errors import MandatoryTemplateMissingError
from srswriter.prompts.store import TemplateStore, default_search_dirs


class TestResolution:
    """Key to path resolution across search directories."""

    def test_first_directory_wins(self, tmp_path, settings):
        first = tmp_path / "first"
        second = tmp_path / "second"
        for d, text in ((first, "from first"), (second, "from second")):
            (d / "base").mkdir(parents=True)
            (d / "base" / "quality-guidelines.md").write_text(text)

        store = TemplateStore(settings=settings, search_dirs=[first, second])
        assert store.load("base/quality-guidelines") == "from first"

    def test_falls_through_to_later_directory(self, tmp_path, settings):
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        (second / "base").mkdir(parents=True)
        (second / "base" / "boundary-constraints.md").write_text("fallback")

        store = TemplateStore(settings=settings, search_dirs=[first, second])
        assert store.load("base/boundary-constraints") == "fallback"

    def test_role_templates_prefer_poml(self, rules_dir, store):
        poml = rules_dir / "specialists" / "content" / "fr_writer.poml"
        poml.write_text("poml body")
        assert store.resolve("specialists/content/fr_writer") == poml.resolve()

    def test_base_templates_ignore_poml(self, rules_dir, store):
        (rules_dir / "base" / "extra.poml").write_text("poml only")
        assert store.resolve("base/extra") is None

    def test_explicit_extension_is_used_as_is(self, rules_dir, store):
        assert store.resolve("base/output-format-schema.md") is not None

    def test_key_escaping_search_dirs_is_not_resolved(self, rules_dir, store, caplog):
        (rules_dir.parent / "secret.md").write_text("TOP-SECRET-CONTENT")
        with caplog.at_level(logging.WARNING):
            assert store.resolve("specialists/content/../../../secret") is None
            assert store.load("specialists/content/../../../secret") == ""
        assert "escapes the template directories" in caplog.text

    def test_dotted_key_inside_search_dir_still_resolves(self, store):
        assert store.resolve("specialists/content/../../base/quality-guidelines") is not None

    def test_candidate_paths_cover_every_directory(self, tmp_path, settings):
        dirs = [tmp_path / "a", tmp_path / "b"]
        store = TemplateStore(settings=settings, search_dirs=dirs)
        paths = store.candidate_paths("base/x")
        assert paths == [tmp_path / "a" / "base" / "x.md", tmp_path / "b" / "base" / "x.md"]

    def test_default_search_dirs_keep_existing_only(self, tmp_path):
        root = tmp_path / "explicit"
        root.mkdir()
        dirs = default_search_dirs(AssemblySettings(), template_root=str(root))
        assert dirs[0] == root.resolve()
        assert all(d.is_dir() for d in dirs)
        assert len(dirs) == len(set(dirs))

    def test_default_search_dirs_skip_missing_root(self, tmp_path):
        missing = tmp_path / "missing"
        dirs = default_search_dirs(AssemblySettings(), template_root=str(missing))
        assert missing.resolve() not in dirs


class TestLoading:
    """Optional and mandatory loads."""

    def test_missing_optional_template_returns_empty(self, store, caplog):
        with caplog.at_level(logging.WARNING):
            assert store.load("base/does-not-exist") == ""
        assert "template_missing" in caplog.text
        assert "base/does-not-exist" in caplog.text

    def test_missing_mandatory_template_raises(self, rules_dir, store, caplog):
        (rules_dir / "master.md").unlink()
        with caplog.at_level(logging.ERROR):
            with pytest.raises(MandatoryTemplateMissingError) as exc_info:
                store.load("master", mandatory=True)

        assert exc_info.value.key == "master"
        assert any(p.endswith("master.md") for p in exc_info.value.searched_paths)
        assert "Mandatory template 'master'" in caplog.text

    def test_undecodable_optional_template_degrades(self, rules_dir, store, caplog):
        (rules_dir / "base" / "quality-guidelines.md").write_bytes(b"## Quality\n\xff\xfe broken")
        with caplog.at_level(logging.WARNING):
            assert store.load("base/quality-guidelines") == ""
        assert "unreadable template" in caplog.text

    def test_undecodable_mandatory_template_raises(self, rules_dir, store):
        (rules_dir / "master.md").write_bytes(b"\xff\xfe{{ROLE_DEFINITION}}")
        with pytest.raises(MandatoryTemplateMissingError) as exc_info:
            store.load("master", mandatory=True)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_mandatory_present_template_loads(self, store):
        assert "{{ROLE_DEFINITION}}" in store.load("master", mandatory=True)

    def test_load_parsed_splits_frontmatter(self, store):
        parsed = store.load_parsed("specialists/content/fr_writer")
        assert parsed.has_config_block
        assert parsed.body.startswith("# Functional Requirements Writer")
        assert parsed.config.role_alias == "Functional Requirements Writer"

    def test_load_first_returns_first_existing_key(self, store):
        key, parsed = store.load_first(
            ["specialists/content/nope", "specialists/process/requirement_syncer"]
        )
        assert key == "specialists/process/requirement_syncer"
        assert "Requirement Syncer" in parsed.body

    def test_load_first_with_no_match(self, store):
        key, parsed = store.load_first(["specialists/content/nope"])
        assert key is None
        assert parsed.body == ""

    def test_async_load(self, store):
        text = asyncio.run(store.aload("base/quality-guidelines"))
        assert "QUALITY-MARK" in text


class TestCaching:
    """Process-lifetime cache keyed by resolved path."""

    def test_cache_survives_file_change_until_cleared(self, rules_dir, store):
        path = rules_dir / "base" / "quality-guidelines.md"
        first = store.load("base/quality-guidelines")
        path.write_text("changed on disk")

        assert store.load("base/quality-guidelines") == first

        store.clear_cache()
        assert store.load("base/quality-guidelines") == "changed on disk"

    def test_parsed_template_is_parsed_once(self, store):
        a = store.load_parsed("specialists/content/fr_writer")
        b = store.load_parsed("specialists/content/fr_writer")
        assert a is b

    def test_stores_do_not_share_caches(self, rules_dir, settings):
        a = TemplateStore(settings=settings, search_dirs=[rules_dir])
        b = TemplateStore(settings=settings, search_dirs=[rules_dir])
        a.load("master")
        assert a.stats().cached_count == 1
        assert b.stats().cached_count == 0


class TestInventory:
    """list_templates() and stats()."""

    def test_list_templates_by_category(self, store):
        assert store.list_templates("specialists/process") == [
            "specialists/process/exporter",
            "specialists/process/requirement_syncer",
        ]

    def test_list_all_templates(self, store):
        keys = store.list_templates()
        assert "master" in keys
        assert "base/boundary-constraints" in keys
        assert "specialists/content/fr_writer" in keys

    def test_stats_counts_categories(self, store):
        store.load("master")
        store.load("base/quality-guidelines")
        stats = store.stats()

        assert stats.cached_count == 2
        assert stats.average_size > 0
        assert stats.categories["base"] == 6
        assert stats.categories["root"] == 2
