from voice2post.repositories.query_utils import apply_equals, apply_where, first_doc


class _FilterCapableQuery:
    def __init__(self):
        self.kwargs = None

    def where(self, *args, **kwargs):
        self.kwargs = kwargs
        return self


class _PositionalOnlyQuery:
    def __init__(self):
        self.args = []

    def where(self, *args, **kwargs):
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        self.args.append(args)
        return self


class _StreamQuery:
    def __init__(self, docs):
        self.docs = docs
        self.limit_value = None

    def limit(self, count):
        self.limit_value = count
        return self

    def stream(self):
        return iter(self.docs[: self.limit_value])


def test_apply_where_prefers_field_filter_keyword():
    query = _FilterCapableQuery()

    result = apply_where(query, "uid", "==", "u123")

    assert result is query
    assert query.kwargs is not None
    assert "filter" in query.kwargs


def test_apply_where_falls_back_to_positional_for_simple_test_doubles():
    query = _PositionalOnlyQuery()

    result = apply_where(query, "uid", "==", "u123")

    assert result is query
    assert query.args == [("uid", "==", "u123")]


def test_apply_equals_chains_one_filter_per_field():
    query = _PositionalOnlyQuery()

    apply_equals(query, uid="u1", style="IG")

    assert query.args == [("uid", "==", "u1"), ("style", "==", "IG")]


def test_first_doc_limits_to_one_and_handles_empty():
    query = _StreamQuery(["a", "b"])
    assert first_doc(query) == "a"
    assert query.limit_value == 1
    assert first_doc(_StreamQuery([])) is None
