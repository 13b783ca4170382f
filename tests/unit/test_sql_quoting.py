import pytest

from tablebrowser.domain.errors import ValidationError
from tablebrowser.utils.sql_quoting import QueryParams, escape_like_pattern, qualified_name, quote_identifier


class TestQuoteIdentifier:

    def test_plain_name(self):
        assert quote_identifier("users") == '"users"'

    def test_reserved_word_and_mixed_case(self):
        assert quote_identifier("user") == '"user"'
        assert quote_identifier("CreatedAt") == '"CreatedAt"'

    def test_embedded_double_quote_is_doubled(self):
        assert quote_identifier('a"b') == '"a""b"'

    def test_injection_attempt_stays_inside_quotes(self):
        quoted = quote_identifier('"; DROP TABLE x; --')
        assert quoted == '"""; DROP TABLE x; --"'
        # Every inner quote is doubled, so the identifier cannot be closed early
        assert quoted[1:-1].replace('""', "").count('"') == 0

    @pytest.mark.parametrize("name", ["", None, 42])
    def test_rejects_empty_or_non_string(self, name):
        with pytest.raises(ValidationError):
            quote_identifier(name)

    def test_rejects_nul_byte(self):
        with pytest.raises(ValidationError):
            quote_identifier("bad\x00name")

    def test_rejects_overlong_name(self):
        quote_identifier("a" * 63)
        with pytest.raises(ValidationError):
            quote_identifier("a" * 64)

    def test_qualified_name(self):
        assert qualified_name("public", "order items") == '"public"."order items"'


class TestEscapeLikePattern:

    def test_wildcards_are_escaped(self):
        assert escape_like_pattern("50%_off") == "50\\%\\_off"

    def test_backslash_is_escaped_first(self):
        assert escape_like_pattern("a\\%") == "a\\\\\\%"

    def test_plain_text_unchanged(self):
        assert escape_like_pattern("ada") == "ada"


class TestQueryParams:

    def test_placeholders_follow_bind_order(self):
        params = QueryParams()
        assert params.bind("a") == "$1"
        assert params.bind(2) == "$2"
        assert params.values == ["a", 2]
        assert len(params) == 2

    def test_values_never_appear_in_placeholder(self):
        params = QueryParams()
        placeholder = params.bind("'; DROP TABLE users; --")
        assert placeholder == "$1"
