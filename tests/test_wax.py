# tests/test_wax.py
"""Tests for the Wax facade: registration, context merging and file rendering."""

import json
import textwrap
import pybars
import pytest
from pathlib import Path

from barswax import RenderResult, Wax, WaxConfig, create_wax
from barswax.core.engine import HandlebarsEngine
from barswax.exceptions import ConfigError, TemplateError


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))
    return path


class RecordingTemplate:
    """A precompiled template that records what it is rendered with."""

    def __init__(self):
        self.calls = []

    def __call__(self, context, options):
        self.calls.append((context, options))
        return "rendered"


def shout(render, options):
    def wrapped(context=None, render_options=None):
        return render(context, render_options).upper()
    return wrapped


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Creates a site layout with partials, helpers, decorators and data."""
    write(tmp_path / "partials" / "header.hbs", "[{{site}}]")
    write(tmp_path / "partials" / "nested" / "footer.layout.hbs", "(footer {{title}})")
    write(tmp_path / "partials" / "notes.txt", "not a partial")
    write(tmp_path / "helpers" / "upper.py", """
        def upper(this, value):
            return str(value).upper()

        exports = upper
    """)
    write(tmp_path / "helpers" / "text" / "wrap.py", """
        def wrap(this, value):
            return "<" + str(value) + ">"

        exports = wrap
    """)
    write(tmp_path / "decorators" / "shout.py", """
        def shout(render, options):
            def wrapped(context=None, render_options=None):
                return render(context, render_options).upper()
            return wrapped

        exports = shout
    """)
    write(tmp_path / "data" / "site.json", json.dumps({"site": "S", "year": 2024}))
    write(tmp_path / "data" / "meta.toml", 'author = "A"\n')
    write(tmp_path / "views" / "page.hbs", "{{> header}} {{title}}")
    return tmp_path


class TestRegistration:
    def test_calls_are_chainable(self, project):
        wax = Wax(cwd=project)
        assert wax.partials("partials/**/*.hbs").helpers("helpers/**/*.py") is wax
        assert wax.decorators("decorators/*.py").data("data/*") is wax

    def test_partials_named_by_base_name_and_filtered_by_extension(self, project):
        wax = Wax(cwd=project).partials("partials/**/*")
        assert sorted(wax.handlebars.partials) == ["footer", "header"]

    def test_partials_from_mapping(self, project):
        wax = Wax(cwd=project).partials({"inline": "Inline {{title}}"})
        assert wax.compile("{{> inline}}")({"title": "T"}) == "Inline T"

    def test_helpers_named_by_path(self, project):
        wax = Wax(cwd=project).helpers("helpers/**/*.py")
        assert sorted(wax.handlebars.helpers) == ["text-wrap", "upper"]

    def test_helpers_from_mapping(self, project):
        wax = Wax(cwd=project).helpers({"twice": lambda this, v: v * 2})
        assert wax.compile("{{twice n}}")({"n": 4}) == "8"

    def test_decorators_registered_separately(self, project):
        wax = Wax(cwd=project).decorators("decorators/*.py")
        assert list(wax.handlebars.decorators) == ["shout"]
        assert wax.handlebars.helpers == {}

    def test_data_merges_into_context(self, project):
        wax = Wax(cwd=project).data("data/*").data({"extra": True})
        assert dict(wax.context) == {"site": "S", "year": 2024, "author": "A", "extra": True}

    def test_star_pattern_skips_nested_data(self, project):
        write(project / "data" / "sub" / "extra.json", json.dumps({"extra": 1}))
        wax = Wax(cwd=project).data("data/*")
        assert "extra" not in wax.context
        assert wax.context["site"] == "S"

    def test_data_leaf_files_are_skipped_without_name_function(self, project):
        write(project / "data" / "plain.txt", "just text")
        wax = Wax(cwd=project).data("data/plain.txt")
        assert dict(wax.context) == {}

    def test_data_name_function_override(self, project):
        write(project / "data" / "plain.txt", "just text")
        wax = Wax(cwd=project).data("data/plain.txt", parse_data_name=lambda options, record: record.path.stem)
        assert dict(wax.context) == {"plain": "just text"}

    def test_per_call_options_do_not_mutate_config(self, project):
        wax = Wax(cwd=project)
        before = wax.config
        wax.helpers("upper.py", cwd=project / "helpers")
        assert wax.config is before
        assert wax.config.cwd == project
        assert "upper" in wax.handlebars.helpers

    def test_unknown_option_raises(self, project):
        with pytest.raises(ConfigError):
            Wax(cwd=project).helpers({}, colour="red")

    def test_missing_data_file_propagates(self, project):
        def factory(engine, options):
            return json.loads((project / "missing.json").read_text())
        with pytest.raises(FileNotFoundError):
            Wax(cwd=project).data(factory)


class TestCompile:
    def test_context_and_call_data_are_merged(self):
        template = RecordingTemplate()
        wax = Wax().data({"site": "S"})
        assert wax.compile(template)({"title": "T"}) == "rendered"

        context, options = template.calls[0]
        assert context["title"] == "T"
        assert context["site"] == "S"
        assert context["_parent"] == {"site": "S"}
        assert options["data"]["global"] == {"site": "S", "_parent": {"site": "S"}}
        assert options["data"]["local"] == {"title": "T", "_parent": {"site": "S"}}

    def test_call_data_wins_over_context(self):
        template = RecordingTemplate()
        Wax().data({"title": "shared"}).compile(template)({"title": "call"})
        assert template.calls[0][0]["title"] == "call"

    def test_parent_reference_cannot_be_overridden(self):
        template = RecordingTemplate()
        wax = Wax().data({"site": "S"})
        wax.compile(template)({"_parent": "mine"}, {"data": {"global": {"_parent": "x"}}})
        context, options = template.calls[0]
        assert context["_parent"] is options["data"]["global"]["_parent"]
        assert context["_parent"] == {"site": "S"}

    def test_explicit_frames_replace_defaults(self):
        template = RecordingTemplate()
        wax = Wax(template_options={"data": {"mode": "preview"}}).data({"site": "S"})
        wax.compile(template)({"title": "T"}, {"data": {"global": {"g": 1}, "local": {"l": 2}}})
        frames = template.calls[0][1]["data"]
        assert frames["global"] == {"g": 1, "_parent": {"site": "S"}}
        assert frames["local"] == {"l": 2, "_parent": {"site": "S"}}
        assert "mode" not in frames

    def test_explicit_empty_frames_are_kept(self):
        template = RecordingTemplate()
        wax = Wax().data({"site": "S"})
        wax.compile(template)({"title": "T"}, {"data": {"global": {}, "local": {}}})
        frames = template.calls[0][1]["data"]
        assert frames["global"] == {"_parent": {"site": "S"}}
        assert frames["local"] == {"_parent": {"site": "S"}}

    def test_global_frame_inside_blocks(self):
        wax = Wax().data({"site": "S"})
        assert wax.compile("{{#each items}}[{{@global.site}}]{{/each}}")({"items": [1, 2]}) == "[S][S]"
        assert wax.compile("{{#with page}}{{@local.page.title}}{{/with}}")({"page": {"title": "P"}}) == "P"

    def test_bound_pybars_program(self):
        wax = Wax().helpers({"upper": lambda this, v: v.upper()}).data({"site": "S"})
        program = pybars.Compiler().compile("{{upper name}} {{@global.site}}")
        assert wax.compile(wax.handlebars.bind(program))({"name": "bob"}) == "BOB S"

    def test_template_option_defaults_are_applied(self):
        template = RecordingTemplate()
        Wax(template_options={"data": {"mode": "preview"}, "strict": True}).compile(template)()
        options = template.calls[0][1]
        assert options["data"]["mode"] == "preview"
        assert options["strict"] is True
        assert options["data"]["local"] == {"_parent": {}}

    def test_context_changes_after_compile_are_visible(self):
        wax = Wax().data({"site": "S"})
        render = wax.compile("{{site}}/{{late}}")
        wax.data({"late": "L"})
        assert render() == "S/L"

    def test_instances_are_independent(self):
        first = Wax().data({"site": "first"})
        second = Wax().data({"site": "second"})
        assert first.compile("{{site}} {{title}}")({"title": "T"}) == "first T"
        assert second.compile("{{site}} {{title}}")({"title": "U"}) == "second U"
        assert first.handlebars is not second.handlebars

    def test_render_with_pybars(self, project):
        wax = (
            Wax(cwd=project)
            .partials("partials/**/*.hbs")
            .helpers("helpers/**/*.py")
            .data("data/site.json")
        )
        render = wax.compile("{{> header}} {{upper title}} {{> footer}}")
        assert render({"title": "home"}) == "[S] HOME (footer home)"

    def test_compile_options_apply_decorators(self, project):
        wax = Wax(cwd=project, compile_options={"decorators": ["shout"]}).decorators("decorators/*.py")
        assert wax.compile("hi {{name}}")({"name": "bob"}) == "HI BOB"
        assert wax.compile("hi {{name}}", {"decorators": []})({"name": "bob"}) == "hi bob"

    def test_custom_engine(self):
        engine = HandlebarsEngine()
        wax = create_wax(engine)
        assert wax.handlebars is engine
        assert wax.config.engine is engine


class TestEngine:
    def test_renders_file(self, project):
        wax = Wax(cwd=project).partials("partials/*.hbs").data("data/site.json")
        result = wax.engine("views/page.hbs", {"title": "T"})
        assert result == RenderResult(output="[S] T")
        assert result.ok

    def test_missing_file_reports_error(self, project):
        result = Wax(cwd=project).engine("views/missing.hbs", {})
        assert not result.ok
        assert result.output is None
        assert isinstance(result.error, FileNotFoundError)

    def test_render_error_is_captured(self, project):
        write(project / "views" / "broken.hbs", "{{fail}}")
        wax = Wax(cwd=project).helpers({"fail": lambda this: 1 / 0})
        result = wax.engine("views/broken.hbs")
        assert isinstance(result.error, TemplateError)
        with pytest.raises(TemplateError):
            result.unwrap()

    def test_render_file_raises(self, project):
        with pytest.raises(FileNotFoundError):
            Wax(cwd=project).render_file("views/missing.hbs")

    def test_cache_reused_when_not_busting(self, project):
        template = write(project / "views" / "cached.hbs", "v1 {{x}}")
        wax = Wax(cwd=project, bust_cache=False)
        assert wax.render_file("views/cached.hbs", {"x": 1}) == "v1 1"
        template.write_text("v2 {{x}}")
        assert wax.render_file("views/cached.hbs", {"x": 2}) == "v1 2"

    def test_cache_busted_by_default(self, project):
        template = write(project / "views" / "cached.hbs", "v1")
        wax = Wax(cwd=project)
        assert wax.config.bust_cache is True
        assert wax.render_file("views/cached.hbs") == "v1"
        template.write_text("v2")
        assert wax.render_file("views/cached.hbs") == "v2"

    def test_absolute_path(self, project):
        wax = Wax(cwd=project).partials("partials/*.hbs")
        assert wax.render_file(project / "views" / "page.hbs", {"site": "X", "title": "T"}) == "[X] T"


def test_config_with_overrides_returns_new_instance(tmp_path):
    config = WaxConfig(cwd=tmp_path)
    updated = config.with_overrides(bust_cache=False, extensions=[".hbs"])
    assert config.bust_cache is True
    assert updated.bust_cache is False
    assert updated.extensions == (".hbs",)
    assert config.with_overrides() is config
