"""Tests for the View: helpers, filters, layouts and components."""

from datetime import datetime
from types import SimpleNamespace

import pytest

from viewc import Context, RenderError, TemplateNotFoundError, View, ViewSettings


@pytest.fixture
def templates(tmp_path):
    root = tmp_path / "templates"
    (root / "layouts").mkdir(parents=True)
    (root / "components").mkdir()
    return root


@pytest.fixture
def make_view(tmp_path, templates):
    def factory(**kwargs):
        settings = kwargs.pop("settings", None) or ViewSettings(cache_dir=tmp_path / "cache")
        return View(templates, settings=settings, **kwargs)

    return factory


def url_for(name, **params):
    if name != "post":
        raise LookupError(name)
    return f"/posts/{params.get('id', '')}"


# =============================================================================
# Output and filters
# =============================================================================


class TestOutput:
    def test_escapes_by_default(self):
        assert View().render_string("{{ name }}", name="<script>") == "&lt;script&gt;"

    def test_bang_outputs_raw(self):
        assert View().render_string("{{ !html }}", html="<b>x</b>") == "<b>x</b>"

    def test_unset_variable_renders_empty(self):
        assert View().render_string("[{{ nothing }}]") == "[]"

    def test_pair_loop_over_mapping(self):
        html = View().render_string(
            "{% for key, value in data %}{{ key }}={{ value }};{% endfor %}",
            data={"a": 1, "b": 2},
        )

        assert html == "a=1;b=2;"

    def test_pair_loop_over_list_uses_indices(self):
        html = View().render_string("{% for i, x in xs %}{{ i }}:{{ x }} {% endfor %}", xs=["a", "b"])

        assert html == "0:a 1:b "

    def test_assignment_then_output(self):
        assert View().render_string("{{ total = price * qty }}{{ total }}", price=2, qty=3) == "6"

    def test_pair_loop_over_items_view(self):
        html = View().render_string(
            "{% for k, v in data.items() %}{{ k }}={{ v }};{% endfor %}",
            data={"a": 1, "b": 2},
        )

        assert html == "a=1;b=2;"

    def test_plain_attribute_is_read(self):
        post = SimpleNamespace(title="Hello")

        assert View().render_string("{{ post.title }}", post=post) == "Hello"

    def test_mapping_items_attribute_is_not_called(self):
        row = SimpleNamespace(items=["a", "b"])

        assert View().render_string("{{ row.items|length }}", row=row) == "2"

    def test_numeric_member_indexes(self):
        assert View().render_string("{{ rows.0 }}-{{ rows.1 }}", rows=["x", "y"]) == "x-y"

    @pytest.mark.parametrize("items, expected", [([1], "few"), ([1, 2, 3, 4], "many")])
    def test_filter_inside_comparison(self, items, expected):
        template = "{% if items|length > 3 %}many{% else %}few{% endif %}"

        assert View().render_string(template, items=items) == expected

    @pytest.mark.parametrize("a, expected", [(True, "yes"), (False, "no")])
    def test_ternary(self, a, expected):
        assert View().render_string("{{ a ? 'yes' : 'no' }}", a=a) == expected

    def test_ternary_shorthand(self):
        assert View().render_string("{{ name ?: 'Guest' }}", name="") == "Guest"
        assert View().render_string("{{ name ?: 'Guest' }}", name="Ada") == "Ada"

    def test_lambda_parameter_stays_local(self):
        people = [SimpleNamespace(name="b"), SimpleNamespace(name="a")]
        template = "{% for p in sorted(people, key=lambda p: p.name) %}{{ p.name }}{% endfor %}"

        assert View().render_string(template, people=people) == "ab"


@pytest.mark.parametrize(
    "template, params, expected",
    [
        ("{{ title|upper }}", {"title": "hi"}, "HI"),
        ("{{ name|first }}", {"name": "Ada"}, "A"),
        ("{{ items|length }}", {"items": [1, 2, 3]}, "3"),
        ("{{ bio|nl2br }}", {"bio": "a\n<b>"}, "a<br />\n&lt;b&gt;"),
        ("{{ tags|join(', ') }}", {"tags": ["x", "y"]}, "x, y"),
        ("{{ bio|default('n/a') }}", {}, "n/a"),
        ("{{ data|json }}", {"data": {"a": 1}}, '{"a": 1}'),
        ("{{ when|date('%Y') }}", {"when": datetime(2024, 1, 2)}, "2024"),
        ("{{ when|date }}", {"when": datetime(2024, 1, 2, 3, 4, 5)}, "2024-01-02 03:04:05"),
        ("{{ html|upper|raw }}", {"html": "<i>"}, "<I>"),
    ],
)
def test_filters(template, params, expected):
    assert View().render_string(template, **params) == expected


# =============================================================================
# Templates, layouts and components
# =============================================================================


class TestTemplates:
    def test_render_file_by_name(self, templates, make_view):
        (templates / "hello.html").write_text("<p>{{ name }}</p>")

        assert make_view().render("hello", name="Ada") == "<p>Ada</p>"

    def test_missing_template(self, make_view):
        with pytest.raises(TemplateNotFoundError):
            make_view().render("missing")

    def test_compiled_file_lands_in_cache(self, tmp_path, templates, make_view):
        (templates / "hello.html").write_text("{{ name }}")

        make_view().render("hello.html", name="x")

        assert len(list((tmp_path / "cache").glob("*.compiled"))) == 1

    def test_layout_with_sections(self, templates, make_view):
        (templates / "layouts" / "base.html").write_text(
            "<title>{{ block('title', 'Site') }}</title><main>{{ section('content') }}</main>"
        )
        (templates / "page.html").write_text(
            "{% extend('layouts/base') %}{% start('title') %}Home{% end() %}<p>{{ name }}</p>"
        )

        html = make_view().render("page", name="Ada")

        assert html == "<title>Home</title><main><p>Ada</p></main>"

    def test_block_default(self, templates, make_view):
        (templates / "layouts" / "base.html").write_text("<title>{{ block('title', 'Site') }}</title>")
        (templates / "page.html").write_text("{% extend('layouts/base') %}")

        assert make_view().render("page") == "<title>Site</title>"

    def test_end_without_start(self):
        with pytest.raises(RenderError):
            View().render_string("{% end() %}")

    def test_component_sees_only_props(self, templates, make_view):
        (templates / "components" / "card.html").write_text("<div>{{ title }}-{{ name }}</div>")

        html = make_view().render_string(
            "{{ component('card', {'title': title}) }}", title="T", name="N"
        )

        assert html == "<div>T-</div>"

    def test_component_keeps_page_layout(self, templates, make_view):
        (templates / "layouts" / "base.html").write_text("[{{ section('content') }}]")
        (templates / "components" / "badge.html").write_text("<b>{{ label }}</b>")
        (templates / "page.html").write_text(
            "{% extend('layouts/base') %}{% component('badge', {'label': 'new'}) %}"
        )

        assert make_view().render("page") == "[<b>new</b>]"

    def test_missing_component(self, make_view):
        html = make_view().render_string("{{ component('nope') }}")

        assert html == "<!-- Component 'nope' not found -->"


# =============================================================================
# URLs and assets
# =============================================================================


class TestUrls:
    def test_asset_css_js(self):
        view = View(settings=ViewSettings(asset_base="/static/"))

        assert view.render_string("{{ asset('app.css') }}") == "/static/app.css"
        assert view.render_string("{{ css('app.css') }}") == (
            '<link rel="stylesheet" href="/static/app.css">'
        )
        assert view.js("app.js", defer="defer") == '<script src="/static/app.js" defer="defer"></script>'

    def test_route_through_url_for(self):
        view = View(url_for=url_for)

        assert view.render_string("{{ route('post', id=post_id) }}", post_id=3) == "/posts/3"
        assert view.route("post", {"id": 4}) == "/posts/4"
        assert view.has_route("post")
        assert not view.has_route("missing")

    def test_route_without_url_for(self):
        view = View()

        assert view.route("home") == "#"
        assert not view.has_route("home")

    def test_url(self):
        assert View().url("about") == "/about"


# =============================================================================
# Session, flashes, CSRF and the app object
# =============================================================================


class TestSession:
    def test_flash_is_read_once(self):
        view = View()
        view.flash("success", "Saved")
        template = "{% if has_flash('success') %}{{ get_flash('success') }}{% endif %}"

        assert view.render_string(template) == "Saved"
        assert view.render_string(template) == ""

    def test_get_flashes_clears_all(self):
        view = View()
        view.flash("error", "a")
        view.flash("error", "b")

        assert view.get_flashes() == {"error": ["a", "b"]}
        assert view.get_flashes() == {}

    def test_session_helpers(self):
        view = View(session={"next": "/home"})
        view.set("theme", "dark")

        assert view.render_string("{{ get('next') }}") == "/home"
        assert view.has("theme")
        assert view.get("missing", "x") == "x"

    def test_csrf_from_provider(self):
        view = View(csrf_token=lambda: "tok")

        assert view.render_string("{{ csrf_input }}") == (
            '<input type="hidden" name="_csrf_token" value="tok">'
        )

    def test_csrf_token_is_stable_per_session(self):
        view = View()

        token = view.csrf_token()

        assert token == view.csrf_token()
        assert view.session["_csrf_token"] == token

    def test_app_object(self):
        view = View(user=SimpleNamespace(name="Ada"), settings=ViewSettings(environment="prod"))

        assert view.render_string("{{ app.user.name }}/{{ app.environment }}") == "Ada/prod"
        assert view.app.debug is False


def test_dump_escapes_repr():
    html = View().dump("<b>")

    assert html.startswith('<pre class="viewc-dump">')
    assert "&lt;b&gt;" in html


def test_context_reads_unset_names_as_none():
    ctx = Context(a=1)

    assert ctx.a == 1
    assert ctx.missing is None
    with pytest.raises(AttributeError):
        ctx.__missing_dunder__
