"""Tests for turning compiled text into render functions."""

from types import SimpleNamespace

import pytest

from viewc import RenderError, Renderer, View


def test_to_python_text_and_output():
    source = Renderer().to_python("<p><?py= self.e(ctx.name) ?></p>")

    assert source == (
        "def render(self, ctx):\n"
        "    _append = self.write\n"
        "    _append('<p>')\n"
        "    _append(self.to_str(self.e(ctx.name)))\n"
        "    _append('</p>')\n"
    )


def test_to_python_indents_blocks():
    compiled = (
        "<?py for ctx.item in ctx.items: ?>"
        "<?py if ctx.item: ?>x<?py else: ?>y<?py #endif ?>"
        "<?py #endfor ?>"
    )

    source = Renderer().to_python(compiled)

    assert source.splitlines()[2:] == [
        "    for ctx.item in ctx.items:",
        "        if ctx.item:",
        "            _append('x')",
        "        else:",
        "            _append('y')",
    ]


def test_empty_block_gets_pass():
    source = Renderer().to_python("<?py if ctx.a: ?><?py #endif ?>")

    assert source.splitlines()[-1] == "        pass"


def test_close_marker_inside_string_literal():
    source = Renderer().to_python("<?py= self.e(' ?>') ?>")

    assert "_append(self.to_str(self.e(' ?>')))" in source


@pytest.mark.parametrize(
    "compiled, reason",
    [
        ("<?py #endif ?>", "unexpected '#endif'"),
        ("<?py if ctx.a: ?><?py #endfor ?>", "unexpected '#endfor'"),
        ("<?py if ctx.a: ?>x", "unclosed 'if' block"),
        ("<?py else: ?>", "'else' outside of a block"),
        ("<?py= ctx.a", "unclosed code marker at offset 0"),
    ],
)
def test_unbalanced_markers(compiled, reason):
    with pytest.raises(RenderError) as excinfo:
        Renderer().to_python(compiled, "page.html")

    assert excinfo.value.reason == reason
    assert excinfo.value.template == "page.html"


def test_build_reuses_function():
    renderer = Renderer()

    assert renderer.build("<?py= 1 ?>") is renderer.build("<?py= 1 ?>")


def test_syntax_error_is_wrapped():
    with pytest.raises(RenderError) as excinfo:
        Renderer().build("<?py= 1 + ?>", "broken.html")

    assert "invalid compiled code" in excinfo.value.reason


# =============================================================================
# Rendering through a View
# =============================================================================


class TestRender:
    def test_loop_and_escaping(self):
        html = View().render_string(
            "{% for item in items %}<li>{{ item }}</li>{% endfor %}", items=["a", "<b>"]
        )

        assert html == "<li>a</li><li>&lt;b&gt;</li>"

    def test_if_else_with_accessor(self):
        template = "{% if user.isAdmin %}admin{% else %}member{% endif %}"
        admin = SimpleNamespace(isAdmin=lambda: True)
        member = SimpleNamespace(isAdmin=lambda: False)

        assert View().render_string(template, user=admin) == "admin"
        assert View().render_string(template, user=member) == "member"

    def test_elseif_chain(self):
        template = "{% if n > 1 %}many{% elseif n == 1 %}one{% else %}none{% endif %}"

        assert [View().render_string(template, n=n) for n in (0, 1, 5)] == ["none", "one", "many"]

    def test_runtime_error_is_wrapped(self):
        view = View()

        with pytest.raises(RenderError) as excinfo:
            view.render_string("{{ missing.getName() }}")

        assert excinfo.value.reason.startswith("AttributeError")
        assert view._buffers == []
