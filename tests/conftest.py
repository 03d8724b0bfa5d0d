import itertools
import operator

import pytest

_ids = itertools.count(1)
_OPERATORS = {"==": operator.eq, ">=": operator.ge}


class _Snapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class _DocRef:
    def __init__(self, store, doc_id):
        self._store = store
        self.id = doc_id

    def get(self, transaction=None):
        return _Snapshot(self.id, self._store.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._store:
            self._store[self.id].update(data)
        else:
            self._store[self.id] = dict(data)

    def update(self, data):
        if self.id not in self._store:
            raise KeyError(self.id)
        self._store[self.id].update(data)

    def delete(self):
        self._store.pop(self.id, None)


def _matches(actual, compare, expected):
    if actual is None and compare is not operator.eq:
        return False
    return compare(actual, expected)


class _AggregateResult:
    def __init__(self, value):
        self.value = value


class _Aggregation:
    def __init__(self, value):
        self._value = value

    def get(self):
        return [[_AggregateResult(self._value)]]


class _Query:
    def __init__(self, store, filters=(), limit=None):
        self._store = store
        self._filters = list(filters)
        self._limit = limit

    # Positional form only; apply_where falls back to it.
    def where(self, field_path, op_string, value):
        return _Query(self._store, self._filters + [(field_path, _OPERATORS[op_string], value)], self._limit)

    def limit(self, count):
        return _Query(self._store, self._filters, count)

    def stream(self):
        matches = [
            _Snapshot(doc_id, data)
            for doc_id, data in self._store.items()
            if all(_matches(data.get(field), compare, value) for field, compare, value in self._filters)
        ]
        return iter(matches[: self._limit] if self._limit is not None else matches)

    def count(self):
        return _Aggregation(sum(1 for _ in self.stream()))


class _Collection(_Query):
    def document(self, doc_id=None):
        return _DocRef(self._store, doc_id or f"auto-{next(_ids)}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class _Batch:
    def __init__(self):
        self._ops = []

    def set(self, ref, data):
        self._ops.append(lambda: ref.set(data))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def commit(self):
        for op in self._ops:
            op()


class _Transaction:
    def update(self, ref, data):
        ref.update(data)


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return _Collection(self.collections.setdefault(name, {}))

    def batch(self):
        return _Batch()

    def transaction(self):
        return _Transaction()

    def docs(self, name):
        return self.collections.setdefault(name, {})


class FakeFirestoreModule:
    @staticmethod
    def transactional(fn):
        return fn


@pytest.fixture()
def fake_db():
    return FakeFirestore()


@pytest.fixture()
def fake_firestore_module():
    return FakeFirestoreModule()
