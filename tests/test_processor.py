from classtidy.processor import (SafeTokenProcessor, merge_tokens, remove_duplicates, replace_pair,
                                 replace_single, validate_tokens_exist)


def test_execute_passes_untouched_tokens_in_order():
    p = SafeTokenProcessor(['a', 'b', 'c'])
    p.mark_removal('b')
    result = p.execute()
    assert result.tokens == ['a', 'c']
    assert result.changed


def test_additions_are_appended_after_originals():
    p = SafeTokenProcessor(['p-4', 'w-4', 'h-4', 'm-2'])
    p.mark_removal('w-4')
    p.mark_removal('h-4')
    p.add_token('size-4')
    assert p.execute().tokens == ['p-4', 'm-2', 'size-4']


def test_first_intent_for_a_position_wins():
    p = SafeTokenProcessor(['a', 'b'])
    p.mark_replacement('a', 'x')
    p.mark_removal('a')
    assert p.execute().tokens == ['x', 'b']

    p = SafeTokenProcessor(['a', 'b'])
    p.mark_removal('a')
    p.mark_replacement('a', 'x')
    assert p.execute().tokens == ['b']


def test_repeated_marks_target_the_same_token():
    p = SafeTokenProcessor(['a', 'a', 'b'])
    p.mark_removal('a')
    p.mark_removal('a')
    assert p.execute().tokens == ['a', 'b']


def test_position_targets_a_specific_duplicate():
    p = SafeTokenProcessor(['a', 'b', 'a'])
    assert p.mark_removal('a', 2)
    assert not p.mark_removal('a', 1)
    assert p.execute().tokens == ['a', 'b']


def test_missing_token_is_reported():
    p = SafeTokenProcessor(['a'])
    assert not p.mark_removal('z')
    assert not p.mark_replacement('z', 'y')
    assert not p.has_intents()
    result = p.execute()
    assert result.tokens == ['a']
    assert not result.changed


def test_changed_even_when_text_is_identical():
    p = SafeTokenProcessor(['a'])
    p.mark_replacement('a', 'a')
    result = p.execute()
    assert result.tokens == ['a']
    assert result.changed


def test_operations_are_listed():
    p = SafeTokenProcessor(['a', 'b'])
    p.mark_removal('a')
    p.mark_replacement('b', 'c')
    p.add_token('d')
    assert p.execute().operations == [('remove', 'a', None), ('replace', 'b', 'c'), ('add', None, 'd')]


def test_reset_keeps_snapshot():
    p = SafeTokenProcessor(['a', 'b'])
    p.mark_removal('a')
    p.add_token('c')
    p.reset()
    assert not p.has_intents()
    assert p.snapshot == ('a', 'b')
    assert p.preview() == {'original': ['a', 'b'], 'intents': [], 'additions': []}


def test_replace_pair_is_all_or_nothing():
    p = SafeTokenProcessor(['w-4', 'h-4'])
    assert not replace_pair(p, 'w-4', 'h-9', 'size-4')
    assert not p.has_intents()
    assert replace_pair(p, 'w-4', 'h-4', 'size-4')
    assert p.execute().tokens == ['size-4']


def test_helpers():
    p = SafeTokenProcessor(['a', 'b'])
    assert replace_single(p, 'b', 'c')
    assert p.execute().tokens == ['a', 'c']
    assert p.mark_removals(['a', 'zz']) == 1
    assert validate_tokens_exist(['a', 'b'], ['b'])
    assert not validate_tokens_exist(['a'], ['a', 'b'])
    assert remove_duplicates(['a', 'b', 'a', 'c', 'b']) == ['a', 'b', 'c']
    assert merge_tokens(['a', 'b'], ['b', 'c']) == ['a', 'b', 'c']
