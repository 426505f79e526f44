from classtidy.tokens import (extract_value, group_by_variant, have_same_value, parse_token,
                              parse_tokens, with_prefix)


def test_parse_token_splits_at_last_colon():
    tok = parse_token('md:hover:w-4', 3)
    assert tok.variants == 'md:hover:'
    assert tok.base == 'w-4'
    assert tok.original == 'md:hover:w-4'
    assert tok.position == 3


def test_parse_token_without_variant():
    tok = parse_token('flex')
    assert tok.variants == ''
    assert tok.base == 'flex'


def test_parse_tokens_ignores_extra_whitespace():
    tokens = parse_tokens('  w-4\n\th-4   p-2 ')
    assert [t.original for t in tokens] == ['w-4', 'h-4', 'p-2']
    assert [t.position for t in tokens] == [0, 1, 2]


def test_group_by_variant_keeps_first_seen_order():
    groups = group_by_variant(parse_tokens('sm:w-4 w-2 sm:h-4 md:h-2 h-2'))
    assert list(groups) == ['sm:', '', 'md:']
    assert [t.original for t in groups['sm:']] == ['sm:w-4', 'sm:h-4']
    assert [t.original for t in groups['']] == ['w-2', 'h-2']


def test_extract_value():
    assert extract_value('w-4') == '4'
    assert extract_value('w-1/2') == '1/2'
    assert extract_value('space-x-4') == '4'
    assert extract_value('flex') is None


def test_have_same_value_is_exact():
    assert have_same_value('w-4', 'h-4')
    assert not have_same_value('w-4', 'h-2')
    assert not have_same_value('w-4', 'h-04')
    assert not have_same_value('block', 'flex')


def test_with_prefix_needs_dash():
    tokens = parse_tokens('w-4 wrap w-full h-4')
    assert [t.base for t in with_prefix(tokens, 'w')] == ['w-4', 'w-full']
