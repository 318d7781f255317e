"""Tests for Model persistence, lookup and associations."""

import pytest

import redisohm
from redisohm import (
    Model,
    MissingID,
    IndexNotFound,
    RecordNotFound,
    UniqueIndexViolation,
    attribute,
    collection,
    counter,
    list_of,
    reference,
    set_of,
    tracked,
)


class Foo(Model):
    a = attribute(index=True)
    b = attribute(index=True)
    c = attribute()
    d = attribute(unique=True)

    bars = collection("Bar", "foo_id")


class Bar(Model):
    a = attribute(unique=True)

    b = counter()

    foo = reference(Foo)

    xs = set_of("Bar")
    ys = list_of("Bar")


class Log(Model):
    text = tracked()

    def append(self, msg):
        self.text.call("APPEND", msg)

    def tail(self, n=100):
        return self.text.call("GETRANGE", -n, -1)


ATTS = {"a": "1", "b": "2", "c": "3", "d": "4"}


@pytest.fixture(autouse=True)
def db():
    """Fresh in-memory Redis with an empty script cache."""
    client = redisohm.connect("memory://")
    client.flushall()
    client.script_flush()
    yield client
    client.flushall()
    redisohm.connection.reset()


class TestDeclaration:
    """Tests for keys and schema."""

    def test_key(self):
        """Model key is the model name; instance keys append the id."""
        assert Foo.key == "Foo"
        assert Foo.key[1] == "Foo:1"

    def test_schema(self):
        """Attributes, indices and uniques are collected from fields."""
        assert Foo.schema.attributes == {"a", "b", "c", "d"}
        assert Foo.schema.indices == {"a", "b"}
        assert Foo.schema.uniques == {"d"}

    def test_reference_adds_indexed_attribute(self):
        """A reference declares an indexed <name>_id attribute."""
        assert "foo_id" in Bar.schema.attributes
        assert "foo_id" in Bar.schema.indices

    def test_tracked_suffixes(self):
        """Counters, sets, lists and tracked keys are tracked."""
        assert Bar.schema.tracked == {"counters", "xs", "ys"}
        assert Log.schema.tracked == {"text"}

    def test_model_name_override(self):
        """model_name replaces the class name as key prefix."""

        class Renamed(Model):
            model_name = "Other"
            x = attribute()

        assert Renamed.key == "Other"
        assert Renamed.create(x="1").key == "Other:1"


class TestInstances:
    """Tests for in-memory instance state."""

    def test_accepts_attributes(self):
        """Constructor takes a dict of attributes."""
        foo = Foo(ATTS)

        assert foo.attributes == ATTS
        assert (foo.a, foo.b, foo.c, foo.d) == ("1", "2", "3", "4")

    def test_accepts_keywords(self):
        """Constructor takes keyword attributes."""
        foo = Foo(a="1", c=3)

        assert foo.attributes == {"a": "1", "c": "3"}

    def test_drops_unknown_attributes(self):
        """Unknown keys are silently dropped."""
        foo = Foo({"a": "1", "zzz": "9"})

        assert foo.attributes == {"a": "1"}

    def test_setters(self):
        """Attribute setters store strings."""
        foo = Foo(ATTS)
        foo.a = 2

        assert foo.a == "2"

    def test_new_has_no_id(self):
        """Unsaved instances have no id."""
        assert Foo(ATTS).id is None

    def test_key_requires_id(self):
        """Key-dependent operations raise MissingID when unsaved."""
        foo = Foo(ATTS)

        with pytest.raises(MissingID):
            foo.key

        with pytest.raises(MissingID):
            foo.delete()

        with pytest.raises(MissingID):
            foo == Foo(ATTS)


class TestPersistence:
    """Tests for save, lookup, update and delete."""

    def test_save_persists_attributes(self, db):
        """Saving assigns an id and writes the hash."""
        foo = Foo(ATTS)
        foo.save()

        assert foo.id == "1"
        assert foo.key == "Foo:1"
        assert db.type("Foo:1") == "hash"

        foo2 = Foo[foo.id]

        assert foo2 == foo
        assert foo2.id == "1"
        assert foo2.attributes == ATTS

    def test_create(self):
        """create() constructs and saves."""
        assert Foo.create(ATTS).id == "1"
        assert Foo.create().id == "2"

    def test_id_is_stable_across_saves(self):
        """Re-saving keeps the same id."""
        foo = Foo.create(ATTS)
        foo.c = "x"
        foo.save()

        assert foo.id == "1"
        assert Foo.all().ids() == ["1"]

    def test_all(self):
        """Every saved id is in the membership set."""
        Foo.create(ATTS)

        assert Foo.all().ids() == ["1"]

    def test_lookup_by_id(self):
        """Model[id] loads; missing ids raise RecordNotFound."""
        Foo.create(ATTS)

        assert Foo[1].d == "4"
        assert Foo[None] is None
        assert "1" in Foo
        assert "2" not in Foo

        with pytest.raises(RecordNotFound):
            Foo[2]

    def test_get(self):
        """get() returns a default instead of raising."""
        Foo.create(ATTS)

        assert Foo.get("1").a == "1"
        assert Foo.get("2") is None
        assert Foo.get(None, "none") == "none"

    def test_fetch(self):
        """fetch() loads many ids in order."""
        Foo.create(a="1")
        Foo.create(a="2")

        foos = Foo.fetch(["2", "1"])

        assert [f.id for f in foos] == ["2", "1"]
        assert [f.a for f in foos] == ["2", "1"]
        assert Foo.fetch([]) == []

    def test_partial_save_keeps_absent_attributes(self):
        """Attributes missing from the instance are left in the store."""
        Foo.create(ATTS)

        foo = Foo.get("1")
        stub = Foo._from_id(foo.id)
        stub.c = "changed"
        stub.save()

        assert Foo[1].attributes == {**ATTS, "c": "changed"}
        assert Foo.find(a="1").ids() == ["1"]

    def test_update(self):
        """update() merges known attributes and saves."""
        foo = Foo.create(ATTS)

        foo.update({"a": "2", "g": "5"})

        assert foo.a == "2"
        assert Foo[1].a == "2"
        assert "g" not in Foo[1].attributes

    def test_update_moves_index_membership(self):
        """Changing an indexed value removes the id from the old index set."""
        foo = Foo.create(ATTS)

        foo.update(a="9")

        assert Foo.find(a="1").ids() == []
        assert Foo.find(a="9").ids() == ["1"]

    def test_delete(self, db):
        """Delete removes every key but the id counter."""
        foo = Foo.create(ATTS)

        foo.delete()

        assert db.keys("*") == ["Foo:id"]
        assert not Foo.exists(foo.id)

    def test_delete_is_idempotent(self, db):
        """Deleting twice is not an error."""
        foo = Foo.create(ATTS)

        foo.delete()
        foo.delete()

        assert db.keys("*") == ["Foo:id"]

    def test_delete_frees_unique_value(self):
        """A deleted record's unique values can be claimed again."""
        Foo.create(ATTS).delete()

        assert Foo.create(ATTS).id == "2"


class TestUniques:
    """Tests for unique fields."""

    def test_with(self):
        """with_() finds by unique value."""
        Foo.create(ATTS)

        foo = Foo.with_("d", "4")

        assert foo is not None
        assert foo.id == "1"
        assert foo.a == "1"
        assert Foo.with_("d", "5") is None

    def test_with_requires_unique(self):
        """with_() on a non-unique field raises IndexNotFound."""
        with pytest.raises(IndexNotFound):
            Foo.with_("a", "1")

    def test_duplicate_unique_raises(self, db):
        """A second record with the same unique value is rejected."""
        Foo.create(ATTS)
        dup = Foo({**ATTS, "a": "other"})

        with pytest.raises(UniqueIndexViolation) as exc:
            dup.save()

        assert exc.value.field == "d"
        assert dup.id is None
        assert Foo.all().ids() == ["1"]
        assert Foo[1].a == "1"
        assert Foo.find(a="other").ids() == []
        assert db.get("Foo:id") == "1"

    def test_resave_keeps_own_unique(self):
        """Saving a record again does not conflict with itself."""
        foo = Foo.create(ATTS)

        foo.save()

        assert Foo.with_("d", "4") == foo

    def test_changing_unique_releases_old_value(self):
        """The old unique value becomes free after a change."""
        foo = Foo.create(ATTS)
        foo.update(d="5")

        assert Foo.with_("d", "4") is None
        assert Foo.with_("d", "5") == foo
        assert Foo.create(d="4").id == "2"

    def test_update_to_taken_unique_raises(self, db):
        """Claiming another record's unique value leaves the store unchanged."""
        first = Foo.create(ATTS)
        second = Foo.create({**ATTS, "a": "2", "d": "5"})

        with pytest.raises(UniqueIndexViolation) as exc:
            second.update(a="3", d="4")

        assert exc.value.field == "d"
        assert Foo.with_("d", "4") == first
        assert Foo.with_("d", "5") == second
        assert Foo[second.id].a == "2"
        assert Foo.find(a="2").ids() == [second.id]
        assert Foo.find(a="3").ids() == []
        assert db.get("Foo:id") == "2"


class TestAssociations:
    """Tests for references, collections, counters and tracked keys."""

    def test_reference_and_collection(self):
        """References store ids; collections find the inverse."""
        foo = Foo.create(ATTS)
        bar = Bar.create({"a": "1"})

        bar.foo = foo
        bar.save()

        assert bar.foo_id == "1"
        assert bar.foo == foo
        assert foo.bars.includes(bar)
        assert bar in foo.bars

    def test_reference_not_found(self):
        """Unset or dangling references read as None."""
        bar = Bar.create(a="1")

        assert bar.foo is None

        bar.foo_id = "99"
        assert bar.foo is None

        bar.foo = None
        assert bar.foo_id is None

    def test_collection_requires_id(self):
        """Collections on unsaved owners raise MissingID."""
        with pytest.raises(MissingID):
            Foo(ATTS).bars

    def test_counters(self):
        """Counters start at zero and change by atomic deltas."""
        bar = Bar.create()

        assert bar.b.value == 0
        assert bar.b.incr() == 1
        assert int(bar.b) == 1
        assert bar.b.decr() == 0
        assert bar.b.incr(5) == 5

    def test_counters_deleted_with_record(self, db):
        """The counters hash is removed on delete."""
        bar = Bar.create()
        bar.b.incr()

        bar.delete()

        assert db.exists("Bar:1:counters") == 0

    def test_tracked_keys(self, db):
        """Tracked keys live under the record and die with it."""
        log = Log.create()

        log.append("hello\n")
        assert log.tail() == "hello\n"

        log.append("world\n")
        assert log.tail(6) == "world\n"

        log.delete()

        assert db.keys("*") == ["Log:id"]
