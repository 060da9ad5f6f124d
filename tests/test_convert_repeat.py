from abbr_convert.core.convert.convert_tree import convert
from abbr_convert.core.tokens import (
    FieldToken,
    LiteralToken,
    Repeater,
    RepeaterNumberToken,
    RepeaterPlaceholderToken,
    TokenElement,
    TokenGroup,
)


def _el(name: str, *children, **kw) -> TokenElement:
    return TokenElement(name=[LiteralToken(name)], elements=list(children), **kw)


def test_explicit_repeat_produces_count_copies_in_order():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(count=4))])

    nodes = convert(tree).children

    assert len(nodes) == 4
    assert [n.repeat.value for n in nodes] == [0, 1, 2, 3]
    assert all(n.repeat.count == 4 for n in nodes)


def test_repeat_does_not_mutate_token_marker():
    marker = Repeater(count=3)
    li = _el("li", repeat=marker)
    tree = TokenGroup(elements=[li])

    convert(tree)

    assert li.repeat is marker
    assert marker.value == 0


def test_snapshots_are_distinct_per_copy():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(count=2))])

    a, b = convert(tree).children

    assert a.repeat is not b.repeat
    assert a.repeat.value == 0


def test_falsy_count_defaults_to_single_copy():
    tree = TokenGroup(elements=[_el("p", repeat=Repeater(count=None)), _el("hr", repeat=Repeater(count=0))])

    nodes = convert(tree).children

    assert [n.name for n in nodes] == ["p", "hr"]


def test_repeated_group_expands_all_members_per_iteration():
    group = TokenGroup(elements=[_el("dt"), _el("dd")], repeat=Repeater(count=2))
    tree = TokenGroup(elements=[_el("dl", group)])

    dl = convert(tree).children[0]

    assert [c.name for c in dl.children] == ["dt", "dd", "dt", "dd"]
    # members of a repeated group carry no marker of their own
    assert all(c.repeat is None for c in dl.children)


def test_repeater_number_inside_repeat():
    li = _el("li", value=[LiteralToken("item "), RepeaterNumberToken(size=2)], repeat=Repeater(count=3))

    nodes = convert(TokenGroup(elements=[li])).children

    assert [n.value for n in nodes] == [["item 01"], ["item 02"], ["item 03"]]


def test_nested_repeater_number_reads_innermost():
    inner = _el("td", value=[RepeaterNumberToken()], repeat=Repeater(count=2))
    outer = _el("tr", inner, value=[RepeaterNumberToken()], repeat=Repeater(count=2))

    rows = convert(TokenGroup(elements=[outer])).children

    assert [r.value for r in rows] == [["1"], ["2"]]
    assert [[c.value for c in r.children] for r in rows] == [[["1"], ["2"]], [["1"], ["2"]]]


def test_implicit_repeat_uses_text_length():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(implicit=True))])

    nodes = convert(tree, text=["a", "b", "c"]).children

    assert len(nodes) == 3
    assert [n.value for n in nodes] == [["a"], ["b"], ["c"]]
    assert all(n.repeat.implicit for n in nodes)


def test_implicit_repeat_with_scalar_text_is_single_copy():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(implicit=True))])

    nodes = convert(tree, text="hello").children

    assert len(nodes) == 1
    assert nodes[0].value == ["hello"]


def test_implicit_repeat_with_empty_text_list_produces_nothing():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(implicit=True)), _el("p")])

    nodes = convert(tree, text=[]).children

    assert [n.name for n in nodes] == ["p"]


def test_implicit_text_goes_to_deepest_last_descendant():
    li = _el("li", _el("span"), _el("a", _el("em")), repeat=Repeater(implicit=True))
    tree = TokenGroup(elements=[_el("ul", li)])

    ul = convert(tree, text=["one", "two"]).children[0]

    for node, expected in zip(ul.children, ["one", "two"]):
        assert node.value is None
        assert node.children[0].value is None
        assert node.children[1].children[0].value == [expected]


def test_implicit_text_appends_to_existing_value():
    field = FieldToken(index=1)
    tree = TokenGroup(
        elements=[
            _el("a", value=[LiteralToken("see: ")], repeat=Repeater(implicit=True)),
        ]
    )

    nodes = convert(tree, text=["x"]).children

    assert nodes[0].value == ["see: x"]

    tree2 = TokenGroup(elements=[_el("a", value=[field], repeat=Repeater(implicit=True))])
    nodes2 = convert(tree2, text=["x"]).children

    assert nodes2[0].value == [field, "x"]


def test_only_first_implicit_repeater_receives_text():
    tree = TokenGroup(
        elements=[
            _el("p", repeat=Repeater(implicit=True)),
            _el("span", repeat=Repeater(implicit=True)),
        ]
    )

    nodes = convert(tree, text=["a", "b"]).children

    assert [n.name for n in nodes] == ["p", "p", "span", "span"]
    assert [n.value for n in nodes] == [["a"], ["b"], None, None]


def test_placeholder_takes_text_and_disables_insertion():
    li = _el("li", value=[LiteralToken("- "), RepeaterPlaceholderToken()], repeat=Repeater(implicit=True))
    tail = _el("p", repeat=Repeater(implicit=True))

    nodes = convert(TokenGroup(elements=[li, tail]), text=["a", "b"]).children

    assert [n.value for n in nodes] == [["- a"], ["- b"], None, None]


def test_nested_implicit_repeaters_inner_wins_first_outer_copy_only():
    # The "already inserted" flag is global to the call: the inner repeater
    # finishes first, so only the first outer copy gets text, and at the
    # inner level.
    inner = _el("li", repeat=Repeater(implicit=True))
    outer = _el("ul", inner, repeat=Repeater(implicit=True))

    uls = convert(TokenGroup(elements=[outer]), text=["a", "b"]).children

    assert len(uls) == 2
    assert [li.value for li in uls[0].children] == [["a"], ["b"]]
    assert [li.value for li in uls[1].children] == [None, None]
    assert all(u.value is None for u in uls)


def test_text_is_not_inserted_without_repeat():
    tree = TokenGroup(elements=[_el("p")])

    assert convert(tree, text=["a"]).children[0].value is None


def test_separate_conversions_do_not_share_state():
    tree = TokenGroup(elements=[_el("li", repeat=Repeater(implicit=True))])

    first = convert(tree, text=["a"]).children
    second = convert(tree, text=["b"]).children

    assert first[0].value == ["a"]
    assert second[0].value == ["b"]
