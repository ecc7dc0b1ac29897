"""Tests for {% %} control structure compilation."""

import pytest

from viewc import TemplateCompiler
from viewc.config import CompilerSettings, ErrorMode
from viewc.exceptions import UnsupportedTagError, UnterminatedRegionError


def compile_string(text: str, **settings) -> str:
    return TemplateCompiler(CompilerSettings(**settings)).compile_string(text)


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("{% for item in items %}", "<?py for ctx.item in ctx.items: ?>"),
        ("{% for post in user.getPosts %}", "<?py for ctx.post in ctx.user.getPosts(): ?>"),
        (
            "{% for key, value in settings %}",
            "<?py for ctx.key, ctx.value in self.pairs(ctx.settings): ?>",
        ),
        ("{% endfor %}", "<?py #endfor ?>"),
        ("{%endif%}", "<?py #endif ?>"),
        ("{% else %}", "<?py else: ?>"),
        ("{% if user.isAdmin %}", "<?py if ctx.user.isAdmin(): ?>"),
        ("{% if not user %}", "<?py if not ctx.user: ?>"),
        ("{% if has_flash('success') %}", "<?py if self.has_flash('success'): ?>"),
        ("{% elseif count > 1 %}", "<?py elif ctx.count > 1: ?>"),
        ("{% elif count > 1 %}", "<?py elif ctx.count > 1: ?>"),
    ],
)
def test_block_tags(tag, expected):
    assert compile_string(tag) == expected


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("{% extend('layouts/base') %}", "<?py self.extend('layouts/base') ?>"),
        ("{% start('content') %}", "<?py self.start('content') ?>"),
        ("{% end() %}", "<?py self.end() ?>"),
        (
            "{% component('alert', {'type': 'error'}) %}",
            "<?py= self.component('alert', {'type': 'error'}) ?>",
        ),
        ("{% csrf_input() %}", "<?py= self.csrf_input() ?>"),
        ("{% route('home') %}", "<?py= self.e(self.route('home')) ?>"),
        ("{% widget(x) %}", "<?py= self.e(widget(ctx.x)) ?>"),
        ("{% form.render() %}", "<?py= ctx.form.render() ?>"),
        ("{% user.getName() %}", "<?py= self.e(ctx.user.getName()) ?>"),
    ],
)
def test_call_tags(tag, expected):
    assert compile_string(tag) == expected


def test_full_block_structure():
    template = (
        "{% for item in items %}"
        "{% if item.isActive %}{{ item.name }}{% else %}-{% endif %}"
        "{% endfor %}"
    )

    assert compile_string(template) == (
        "<?py for ctx.item in ctx.items: ?>"
        "<?py if ctx.item.isActive(): ?><?py= self.e(ctx.item.name) ?>"
        "<?py else: ?>-<?py #endif ?>"
        "<?py #endfor ?>"
    )


class TestUnsupportedTags:
    def test_lenient_marks_tag(self):
        result = compile_string("{% include 'x' %}")

        assert result == "<!-- viewc: Unsupported control tag at line 1: include -->{% include 'x' %}"

    def test_strict_raises_with_line(self):
        with pytest.raises(UnsupportedTagError) as excinfo:
            compile_string("a\nb\n{% include 'x' %}", error_mode=ErrorMode.STRICT)

        assert excinfo.value.tag == "include"
        assert excinfo.value.line == 3

    def test_ignore_leaves_tag(self):
        assert compile_string("{% include 'x' %}", error_mode=ErrorMode.IGNORE) == "{% include 'x' %}"

    def test_empty_tag_is_skipped(self):
        result = TemplateCompiler().compile_string_with_report("a{% %}b")

        assert result.output == "a{% %}b"
        assert result.ok

    def test_unterminated_tag(self):
        result = compile_string("<p>{% if x</p>")

        assert result == "<p><!-- viewc: Unterminated control region at line 1 -->{% if x</p>"

    def test_unterminated_tag_strict(self):
        with pytest.raises(UnterminatedRegionError) as excinfo:
            compile_string("{% if x", error_mode=ErrorMode.STRICT)

        assert excinfo.value.kind == "control"
