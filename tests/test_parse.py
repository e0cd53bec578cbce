import pytest

from csvmap.errors import EmptyInputError
from csvmap.parse import decode_bytes, parse_bytes, parse_text, split_line


def test_headers_and_rows():
    result = parse_text("Name,Email\nJohn,john@x.com")
    assert result.headers == ["Name", "Email"]
    assert result.rows == [{"Name": "John", "Email": "john@x.com"}]
    assert result.total_rows == 1
    assert result.truncated is False


def test_quoted_fields_with_commas_and_escaped_quotes():
    result = parse_text('Name,Note\n"Doe, Jane","Hello, ""World"""')
    assert result.rows == [{"Name": "Doe, Jane", "Note": 'Hello, "World"'}]


def test_cells_are_trimmed():
    cells, open_quote = split_line('  a ,  " b, c "  ,d  ')
    assert cells == ["a", "b, c", "d"]
    assert open_quote is False


def test_unterminated_quote_is_tolerated():
    cells, open_quote = split_line('x,"never closed, still here')
    assert cells == ["x", "never closed, still here"]
    assert open_quote is True

    result = parse_text('A,B\n1,"open')
    assert result.rows == [{"A": "1", "B": "open"}]
    assert [w.issue for w in result.report.warnings] == ["unterminated_quote"]


def test_blank_lines_are_skipped_and_crlf_normalized():
    result = parse_text("A,B\r\n\r\n   \r\n1,2\r\n\n3,4\n")
    assert result.rows == [{"A": "1", "B": "2"}, {"A": "3", "B": "4"}]
    assert result.report.normalizations["newlines"]["changed"] is True


@pytest.mark.parametrize("text", ["", "\n\n", "   \n \t \n"])
def test_empty_input(text):
    with pytest.raises(EmptyInputError):
        parse_text(text)


def test_short_rows_are_padded_and_long_rows_truncated():
    result = parse_text("A,B,C\n1\n1,2,3,4")
    assert result.rows == [
        {"A": "1", "B": "", "C": ""},
        {"A": "1", "B": "2", "C": "3"},
    ]
    issues = [(w.row, w.issue, w.value) for w in result.report.warnings]
    assert issues == [(2, "row_too_short", "1"), (3, "row_too_long", "4")]


def test_duplicate_header_last_occurrence_wins():
    result = parse_text("Name,Email,Name\nfirst,a@x.com,last")
    assert result.headers == ["Name", "Email"]
    assert result.rows == [{"Name": "last", "Email": "a@x.com"}]
    assert result.report.warnings[0].issue == "duplicate_header"


def test_row_limit_bounds_materialized_rows():
    text = "N\n" + "\n".join(str(i) for i in range(25))

    preview = parse_text(text)
    assert len(preview.rows) == 10
    assert preview.rows[-1] == {"N": "9"}
    assert preview.total_rows == 25
    assert preview.truncated is True

    full = parse_text(text, row_limit=None)
    assert len(full.rows) == 25
    assert full.truncated is False


def test_every_row_has_every_header():
    result = parse_text("A,B,C\n1,2\n,,\nx,y,z,w")
    for row in result.rows:
        assert list(row) == result.headers


def test_decode_utf8_bom():
    text, report = decode_bytes("\ufeffName\nZoë".encode("utf-8"))
    assert text == "Name\nZoë"
    assert report["decode_used"] == "utf-8-sig"


def test_parse_bytes_latin1():
    raw = "name,city\nPaul,Montréal\n".encode("latin-1")
    result = parse_bytes(raw)
    assert result.rows[0]["city"] == "Montréal"
    assert result.report.normalizations["encoding"]["decode_used"] != "utf-8"


def test_bare_cr_is_cell_content():
    result = parse_text('A,B\n"x\ry",2\n', row_limit=None)
    assert result.rows == [{"A": "x\ry", "B": "2"}]
    assert result.report.warnings == []
    assert result.report.normalizations["newlines"]["before"]["cr"] == 1
    assert result.report.normalizations["newlines"]["changed"] is False
