from classtidy.patterns import (SPECIFICITY, SPECIFICITY_ORDER, apply_replacements, extract_matches,
                                frameworks_for_file, matchers_for_file)


def _values(content, path):
    return [(m.matcher.syntax, m.value) for m in extract_matches(content, path)]


def test_frameworks_by_extension():
    assert frameworks_for_file('src/App.TSX') == ('react', 'jsx', 'tsx', 'html')
    assert frameworks_for_file('page.vue') == ('vue', 'html')
    assert frameworks_for_file('notes.txt') == ('html',)
    assert frameworks_for_file('Makefile') == ('html',)


def test_svelte_files_use_only_the_svelte_matcher():
    assert [m.syntax for m in matchers_for_file('App.svelte')] == ['svelte']


def test_specificity_is_a_total_order():
    assert len(SPECIFICITY) == len(SPECIFICITY_ORDER) == 11
    assert SPECIFICITY['vue-bind'] < SPECIFICITY['jsx'] < SPECIFICITY['html']


def test_html_attributes():
    content = '<div class="w-4 h-4"><span class=\'p-2\'>x</span></div>'
    assert _values(content, 'a.html') == [('html', 'w-4 h-4'), ('html', 'p-2')]


def test_lookalike_attribute_names_are_ignored():
    content = '<div data-class="w-4 h-4" myclass="w-4 h-4" class="p-1"></div>'
    assert _values(content, 'a.html') == [('html', 'p-1')]


def test_multiline_value():
    content = '<div class="w-4\n     h-4">x</div>'
    assert _values(content, 'a.html') == [('html-multiline', 'w-4\n     h-4')]


def test_jsx_forms():
    content = ('<div className="w-4 h-4" />\n'
               '<p className={"mx-2 my-2"} />\n'
               '<i className={cx("a", b)} />')
    assert _values(content, 'a.jsx') == [('jsx', 'w-4 h-4'), ('jsx-expression', 'mx-2 my-2')]


def test_vue_bindings_outrank_plain_class():
    content = '<div v-bind:class="w-4 h-4"></div><p :class="mx-1 my-1"></p><b class="p-2"></b>'
    assert _values(content, 'a.vue') == [
        ('vue-bind', 'w-4 h-4'), ('vue-shorthand', 'mx-1 my-1'), ('html', 'p-2')]


def test_vue_object_binding_is_skipped():
    content = """<div :class="{ 'w-4': on }"></div>"""
    assert _values(content, 'a.vue') == []


def test_angular_bindings():
    content = '<div [class]="w-4 h-4"></div><p [ngClass]="px-2 py-2"></p>'
    assert _values(content, 'a.html') == [
        ('angular-class', 'w-4 h-4'), ('angular-ngclass', 'px-2 py-2')]


def test_template_literal_span_covers_only_the_attribute():
    content = 'const html = `<div class="w-4 h-4">${x}</div>`;'
    matches = extract_matches(content, 'a.js')
    assert len(matches) == 1
    m = matches[0]
    assert m.matcher.syntax == 'template-literal'
    assert content[m.start:m.end] == 'class="w-4 h-4"'


def test_unterminated_value_is_skipped_and_rest_still_found():
    content = '<div class="w-4 h-4>broken</div>\n<p class="mx-2 my-2">ok</p>'
    assert _values(content, 'a.html') == [('html', 'mx-2 my-2')]


def test_matches_do_not_overlap_and_are_ordered():
    content = '<a :class="x"></a><b class="y"></b><c v-bind:class="z"></c>'
    matches = extract_matches(content, 'a.vue')
    starts = [m.start for m in matches]
    assert starts == sorted(starts)
    for a, b in zip(matches, matches[1:]):
        assert a.end <= b.start


def test_apply_replacements_keeps_quotes_and_wrappers():
    content = '<p className={\'w-4 h-4\'} /><i className="a   b" />'
    matches = extract_matches(content, 'a.tsx')
    out = apply_replacements(content, [(matches[0], ['size-4']), (matches[1], ['a'])])
    assert out == '<p className={\'size-4\'} /><i className="a" />'


def test_apply_replacements_with_different_lengths():
    content = 'A<div class="w-4 h-4">B</div>C<div class="p-1">D</div>E'
    matches = extract_matches(content, 'a.html')
    out = apply_replacements(content, [(matches[0], ['size-4']),
                                       (matches[1], ['p-1', 'a-very-long-token', 'another'])])
    assert out == 'A<div class="size-4">B</div>C<div class="p-1 a-very-long-token another">D</div>E'


def test_no_replacements_returns_content():
    assert apply_replacements('<div class="a"></div>', []) == '<div class="a"></div>'
