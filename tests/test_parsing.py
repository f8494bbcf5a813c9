import pytest

from slidecite.parsing import Author, iter_blocks, latex_to_text, parse_bibliography


def test_parse_bibliography_keeps_duplicate_keys(emitter) -> None:
    text = """
    @article{a, author = {Smith, John}, title = {First}, journal = {J}, year = {2020}}
    @article{b, author = {Doe, Jane}, title = {Other}, journal = {J}, year = {2019}}
    @article{a, author = {Smith, John}, title = {Second}, journal = {J}, year = {2021}}
    """

    parsed = parse_bibliography(text, emitter)

    assert [entry.key for entry in parsed] == ["a", "b", "a"]
    assert [entry.title for entry in parsed] == ["First", "Other", "Second"]
    assert parsed[2].issued == {"date-parts": [[2021]]}


def test_parse_bibliography_extracts_authors() -> None:
    parsed = parse_bibliography(
        "@book{k, author = {van der Berg, Anna Maria and Plato}, title = {T}, year = {1999}}"
    )

    assert parsed[0].authors == (
        Author(family="van der Berg", given="Anna Maria"),
        Author(family="Plato", given=None),
    )


def test_parse_bibliography_records_syntax_errors_per_entry(emitter) -> None:
    text = """
    @article{good, author = {Smith, John}, title = {Fine}, journal = {J}, year = {2020}}
    @article{broken, title = "Missing comma" author = {Doe, Jane}}
    @article{after, author = {Roe, Ann}, title = {Still Read}, journal = {J}, year = {2022}}
    """

    parsed = parse_bibliography(text, emitter)

    assert [entry.key for entry in parsed] == ["good", "broken", "after"]
    assert parsed[1].entry is None
    assert parsed[1].error
    assert parsed[2].title == "Still Read"


def test_parse_bibliography_expands_string_macros() -> None:
    text = """
    @string{jr = "Journal of Results"}
    @comment{ignored}
    @article{m, author = {Roe, Ann}, title = {T}, journal = jr, year = 2019}
    """

    parsed = parse_bibliography(text)

    assert len(parsed) == 1
    assert parsed[0].entry is not None
    assert parsed[0].entry.fields["journal"] == "Journal of Results"


def test_parse_bibliography_handles_non_numeric_year() -> None:
    parsed = parse_bibliography("@misc{k, title = {T}, year = {in press}}")

    assert parsed[0].issued is None
    assert parsed[0].year == "in press"


def test_iter_blocks_balances_nested_braces() -> None:
    blocks = list(iter_blocks("junk @misc{a, title = {A {nested} title}} tail @misc(b, title = {B})"))

    assert [block.entry_type for block in blocks] == ["misc", "misc"]
    assert blocks[0].text == "@misc{a, title = {A {nested} title}}"
    assert blocks[1].text == "@misc(b, title = {B})"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("{The} {GNU} Project", "The GNU Project"),
        ("Plain", "Plain"),
    ],
)
def test_latex_to_text(value: str, expected: str) -> None:
    assert latex_to_text(value) == expected
