from cognify.repositories.query_utils import apply_where, snapshot_to_record


class _FilterCapableQuery:
    def __init__(self):
        self.kwargs = None

    def where(self, *args, **kwargs):
        self.kwargs = kwargs
        return self


class _PositionalOnlyQuery:
    def __init__(self):
        self.args = None

    def where(self, *args, **kwargs):
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        self.args = args
        return self


class _Snapshot:
    def __init__(self, doc_id, data, exists=True):
        self.id = doc_id
        self._data = data
        self.exists = exists

    def to_dict(self):
        return self._data


def test_apply_where_prefers_field_filter_keyword():
    query = _FilterCapableQuery()

    result = apply_where(query, "user_id", "==", "u123")

    assert result is query
    assert query.kwargs is not None
    assert "filter" in query.kwargs


def test_apply_where_falls_back_to_positional_for_simple_test_doubles():
    query = _PositionalOnlyQuery()

    result = apply_where(query, "user_id", "==", "u123")

    assert result is query
    assert query.args == ("user_id", "==", "u123")


def test_snapshot_to_record_adds_id_and_skips_missing():
    assert snapshot_to_record(_Snapshot("doc-1", {"title": "Cells"})) == {"title": "Cells", "id": "doc-1"}
    assert snapshot_to_record(_Snapshot("doc-2", None, exists=False)) is None
    assert snapshot_to_record(None) is None
