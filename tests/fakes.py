"""
In-memory stand-in for the slice of the Firestore client API that
FirestoreStore uses: collection/document/get/set/update/add/where/limit/stream.
"""
import itertools

_ids = itertools.count(1)


class FakeSnapshot:
    def __init__(self, doc_id, data, reference=None):
        self.id = doc_id
        self._data = data
        self.reference = reference

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def get(self):
        self._collection.db.calls.append(("get", self._collection.name, self.id))
        return FakeSnapshot(self.id, self._collection.docs.get(self.id), self)

    def set(self, data, merge=False):
        self._collection.db.calls.append(("set", self._collection.name, self.id))
        if merge and self.id in self._collection.docs:
            self._collection.docs[self.id].update(data)
        else:
            self._collection.docs[self.id] = dict(data)

    def update(self, data):
        self._collection.db.calls.append(("update", self._collection.name, self.id))
        if self.id not in self._collection.docs:
            raise KeyError(f"No document to update: {self.id}")
        self._collection.docs[self.id].update(data)


class FakeQuery:
    def __init__(self, collection, filters=(), limit=None):
        self._collection = collection
        self._filters = list(filters)
        self._limit = limit

    def where(self, field, op, value):
        assert op == "==", "only equality filters are supported"
        return FakeQuery(self._collection, self._filters + [(field, value)], self._limit)

    def limit(self, n):
        return FakeQuery(self._collection, self._filters, n)

    def stream(self):
        coll = self._collection
        coll.db.calls.append(("stream", coll.name, tuple(self._filters)))
        if coll.db.fail_reads:
            raise coll.db.fail_reads
        out = []
        for doc_id, data in coll.docs.items():
            if all(field in data and data[field] == value for field, value in self._filters):
                out.append(FakeSnapshot(doc_id, data, FakeDocRef(coll, doc_id)))
        if self._limit is not None:
            out = out[: self._limit]
        return iter(out)


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id=None):
        return FakeDocRef(self, doc_id or f"auto{next(_ids):05d}")

    def add(self, data):
        self.db.calls.append(("add", self.name))
        if self.db.fail_writes.get(self.name):
            raise self.db.fail_writes[self.name]
        ref = self.document()
        self.docs[ref.id] = dict(data)
        return None, ref


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.calls = []
        self.fail_reads = None
        self.fail_writes = {}

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    def seed(self, collection, doc_id, data):
        self.collection(collection).docs[doc_id] = dict(data)

    def docs(self, collection):
        return self.collection(collection).docs


class FakeGateway:
    """Records sends; behaviour per call is scripted with `results`."""

    def __init__(self, results=None, delay=None):
        self.sent = []
        self.results = list(results or [])
        self.delay = delay

    async def send(self, phone, message):
        import asyncio

        from coachfee.notification.textbee_gateway import SmsResult

        self.sent.append((phone, message))
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results.pop(0) if self.results else SmsResult(success=True, status_code=200, response='{"ok":true}')
        if isinstance(result, Exception):
            raise result
        return result
