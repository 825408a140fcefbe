# type: ignore
"""
Tests for Encoder and Decoder: the field walk, DN handling, tag flags,
capability hooks, and the batch helpers.
"""

import datetime
import sys
import unittest

import pytz
from django.conf import settings

from ldapmarshal.coercion import ZERO_TIMESTAMP, format_float
from ldapmarshal.encoding import (
    Decoder,
    Encoder,
    marshal,
    marshal_many,
    unmarshal,
    unmarshal_many,
)
from ldapmarshal.entry import Entry, EntryAttribute
from ldapmarshal.exceptions import (
    NilInput,
    NoDN,
    NotAPointer,
    NotAStruct,
    UnsupportedDNType,
    UnsupportedType,
)
from ldapmarshal.fields import (
    BinaryField,
    BooleanField,
    CharField,
    CodecField,
    DateTimeField,
    EmbeddedField,
    FloatField,
    IntegerField,
    ListField,
    UnsignedIntegerField,
)
from ldapmarshal.models import Model
from ldapmarshal.walker import has_dn, walk_fields

if not settings.configured:
    settings.configure(
        LDAP_MARSHAL={"USE_INTERFACE": True, "SKIP_READ_ONLY": True},
    )

DN = "cn=users,dc=example,dc=com"


class Token:
    """A field value that does its own binary encoding."""

    def __init__(self, value=""):
        self.value = value

    def encode_ldap(self):
        return self.value.encode()

    def decode_ldap(self, data):
        self.value = data.decode()

    def __eq__(self, other):
        return isinstance(other, Token) and self.value == other.value

    def __repr__(self):
        return f"Token({self.value!r})"


class TypeNoDN(Model):
    String = CharField(tag="string")


class TypeEmbed(Model):
    DN = CharField()
    base = EmbeddedField(TypeNoDN)


class TypeTags(Model):
    DN = CharField(tag="dn")
    DistinguishedName = CharField(tag="-")
    Alpha = CharField(tag="beta")


class TypeIntDN(Model):
    DN = IntegerField()


class TypeBytesDN(Model):
    DN = BinaryField()
    cn = CharField()


class TypeTwoDN(Model):
    DN = CharField()
    DistinguishedName = CharField(tag="dn")


class TypeInteger(Model):
    DN = CharField()
    Alpha = IntegerField(tag="beta")


class TypesAll(Model):
    DN = CharField()
    Int16 = IntegerField(tag="itIsAnInt16")
    IntZero = IntegerField(tag="intZero, omitempty")
    FloatPtr = FloatField(null=True)
    Uint8 = UnsignedIntegerField()
    StringPtr = CharField(null=True)
    StringSlice = ListField(CharField())
    Raw = BinaryField(tag="singleRaw", null=True)
    RawSlice = ListField(BinaryField(), tag="multiRaw,omitempty", null=True)
    RawSlice2 = ListField(BinaryField(), null=True)
    BinaryEncoder = CodecField(Token)
    Bool = BooleanField()
    BoolPtr = BooleanField(tag="boolPtr", null=True)
    Other = CharField(tag="-")
    _time = DateTimeField()


class TypeReadOnly(Model):
    DN = CharField()
    cn = CharField()
    CreateTimestamp = DateTimeField(tag="createTimestamp,ro")


class SelfMarshaling(Model):
    DN = CharField()
    cn = CharField()

    def marshal_ldap(self):
        return Entry(self.DN, [EntryAttribute("cn", [self.cn.upper()])])

    def unmarshal_ldap(self, entry):
        self.DN = entry.dn
        self.cn = entry.get_attribute_value("cn").lower()


class User(Model):
    DN = CharField()
    uid = CharField()
    uidNumber = UnsignedIntegerField()
    loginShell = CharField(tag="loginShell,omitempty")
    active = BooleanField()
    jpegPhoto = BinaryField()
    mail = ListField(CharField())
    quota = FloatField()
    pwdChangedTime = DateTimeField()
    token = CodecField(Token)


class TestEncode(unittest.TestCase):

    def test_encode_none(self):
        with self.assertRaises(NilInput):
            marshal(None)

    def test_encode_not_a_model(self):
        with self.assertRaises(NotAStruct):
            marshal({"DN": DN})
        with self.assertRaises(NotAStruct):
            marshal(TypeEmbed)

    def test_invalid_dn_type(self):
        with self.assertRaises(UnsupportedDNType) as cm:
            marshal(TypeIntDN())
        self.assertEqual(str(cm.exception), "unsupported DN type: int")

    def test_bytes_dn(self):
        entry = marshal(TypeBytesDN(DN=DN.encode(), cn="users"))
        self.assertEqual(entry.dn, DN)
        self.assertEqual(entry.get_attribute_values("cn"), ["users"])

    def test_no_dn(self):
        with self.assertRaises(NoDN):
            marshal(TypeNoDN(String="test"))

    def test_empty_dn(self):
        with self.assertRaises(NoDN):
            marshal(TypeEmbed(String="test"))

    def test_embed(self):
        entry = marshal(TypeEmbed(DN=DN, String="string"))
        self.assertEqual(entry.dn, DN)
        self.assertEqual(entry.get_attribute_values("string"), ["string"])
        self.assertEqual(len(entry.attributes), 1)

    def test_embedded_single_attribute(self):
        entry = marshal(TypeEmbed(DN="cn=u", String="x"))
        self.assertEqual(entry.dn, "cn=u")
        self.assertEqual(entry.attributes, [EntryAttribute("string", ["x"])])

    def test_embedded_none_contributes_nothing(self):
        entry = marshal(TypeEmbed(DN=DN, base=None))
        self.assertEqual(entry.attributes, [])

    def test_tag_override_field_name(self):
        entry = marshal(TypeTags(DN=DN, Alpha="alpha"))
        self.assertEqual(entry.dn, DN)
        self.assertEqual(entry.get_attribute_values("beta"), ["alpha"])
        self.assertEqual(entry.get_raw_attribute_value("beta"), b"alpha")

    def test_ignored_field_never_appears(self):
        entry = marshal(TypeTags(DN=DN, DistinguishedName="cn=other", Alpha="a"))
        self.assertEqual([a.name for a in entry.attributes], ["beta"])
        self.assertEqual(entry.dn, DN)

    def test_all_types(self):
        entry = marshal(
            TypesAll(
                DN=DN,
                Int16=0,
                IntZero=0,
                FloatPtr=sys.float_info.max,
                Uint8=255,
                StringPtr="",
                StringSlice=["one"],
                Raw=None,
                RawSlice=None,
                BinaryEncoder=Token(),
                Other="",
            )
        )
        self.assertEqual(entry.dn, DN)
        self.assertEqual(
            [a.name for a in entry.attributes],
            [
                "itIsAnInt16",
                "floatPtr",
                "uint8",
                "stringPtr",
                "stringSlice",
                "singleRaw",
                "rawSlice2",
                "binaryEncoder",
                "bool",
                "boolPtr",
            ],
        )
        self.assertEqual(entry.get_attribute_values("itIsAnInt16"), ["0"])
        self.assertEqual(entry.get_attribute_values("uint8"), ["255"])
        self.assertEqual(entry.get_attribute_values("stringPtr"), [""])
        self.assertEqual(entry.get_attribute_values("bool"), ["FALSE"])

    def test_none_is_an_empty_attribute(self):
        entry = marshal(TypesAll(DN=DN))
        for name in ("floatPtr", "stringPtr", "singleRaw", "rawSlice2", "boolPtr"):
            with self.subTest(name=name):
                attr = entry.get_attribute(name)
                self.assertIsNotNone(attr)
                self.assertEqual(attr.values, [])

    def test_omitempty(self):
        entry = marshal(TypesAll(DN=DN, IntZero=0, RawSlice=[]))
        self.assertIsNone(entry.get_attribute("intZero"))
        self.assertIsNone(entry.get_attribute("multiRaw"))
        entry = marshal(TypesAll(DN=DN, IntZero=3, RawSlice=[b"one", b"two"]))
        self.assertEqual(entry.get_attribute_values("intZero"), ["3"])
        self.assertEqual(entry.get_attribute_values("multiRaw"), ["one", "two"])

    def test_internal_field_is_skipped(self):
        entry = marshal(
            TypesAll(DN=DN, _time=datetime.datetime(2024, 1, 1, tzinfo=pytz.utc))
        )
        self.assertIsNone(entry.get_attribute("time"))
        self.assertIsNone(entry.get_attribute("_time"))

    def test_max_float(self):
        entry = marshal(TypesAll(DN=DN, FloatPtr=sys.float_info.max))
        self.assertEqual(
            entry.get_attribute_values("floatPtr"), [format_float(sys.float_info.max)]
        )

    def test_unsupported_type(self):
        with self.assertRaises(UnsupportedType) as cm:
            marshal(TypeEmbed(DN=DN, String=42))
        self.assertEqual(cm.exception.attr_name, "string")

    def test_last_non_empty_dn_wins(self):
        self.assertEqual(
            marshal(TypeTwoDN(DN="cn=a", DistinguishedName="cn=b")).dn, "cn=b"
        )
        self.assertEqual(marshal(TypeTwoDN(DN="cn=a", DistinguishedName="")).dn, "cn=a")
        with self.assertRaises(NoDN):
            marshal(TypeTwoDN())

    def test_read_only_skipped_by_default(self):
        record = TypeReadOnly(
            DN=DN, cn="users", CreateTimestamp=datetime.datetime(2024, 1, 1)
        )
        self.assertIsNone(marshal(record).get_attribute("createTimestamp"))
        entry = Encoder(skip_read_only=False).encode(record)
        self.assertEqual(
            entry.get_attribute_values("createTimestamp"), ["20240101000000.0Z"]
        )

    def test_marshaler(self):
        entry = marshal(SelfMarshaling(DN=DN, cn="users"))
        self.assertEqual(entry.get_attribute_values("cn"), ["USERS"])

    def test_marshaler_disabled(self):
        entry = Encoder(use_interface=False).encode(SelfMarshaling(DN=DN, cn="users"))
        self.assertEqual(entry.get_attribute_values("cn"), ["users"])

    def test_input_is_not_mutated(self):
        record = User(DN=DN, uid="alice", mail=["a@example.com", ""])
        marshal(record)
        self.assertEqual(record.mail, ["a@example.com", ""])
        self.assertEqual(record.uid, "alice")


class TestDecode(unittest.TestCase):

    def test_decode_to_none(self):
        with self.assertRaises(NilInput):
            unmarshal(Entry(), None)

    def test_decode_to_class(self):
        with self.assertRaises(NotAPointer):
            unmarshal(Entry(), TypeEmbed)

    def test_decode_to_non_model(self):
        with self.assertRaises(NotAStruct):
            unmarshal(Entry(), {})

    def test_decode_no_dn(self):
        with self.assertRaises(NoDN):
            unmarshal(Entry(), TypeNoDN())

    def test_decode_no_dn_ignores_entry_dn(self):
        with self.assertRaises(NoDN):
            unmarshal(Entry(DN, [EntryAttribute("string", ["x"])]), TypeNoDN())

    def test_decode_empty(self):
        record = TypeEmbed()
        unmarshal(Entry(), record)
        self.assertEqual(record, TypeEmbed())

    def test_decode_dn_only(self):
        record = TypeEmbed()
        unmarshal(Entry(DN), record)
        self.assertEqual(record.DN, DN)

    def test_decode_to_embed(self):
        record = TypeEmbed()
        unmarshal(
            Entry(
                DN,
                [
                    EntryAttribute("string", ["one"]),
                    EntryAttribute("noop", ["noop"]),
                ],
            ),
            record,
        )
        self.assertEqual(record, TypeEmbed(DN=DN, String="one"))

    def test_decode_allocates_none_embed(self):
        record = TypeEmbed(base=None)
        unmarshal(Entry(DN, [EntryAttribute("string", ["one"])]), record)
        self.assertEqual(record.base, TypeNoDN(String="one"))

    def test_decode_to_struct_with_tags(self):
        record = TypeTags()
        unmarshal(
            Entry(
                DN,
                [
                    EntryAttribute("beta", ["4"]),
                    EntryAttribute("noop", ["noop"]),
                ],
            ),
            record,
        )
        self.assertEqual(record, TypeTags(DN=DN, Alpha="4"))

    def test_ignored_field_never_populated(self):
        record = TypeTags(DistinguishedName="keep")
        unmarshal(
            Entry(DN, [EntryAttribute("distinguishedName", ["cn=other"])]), record
        )
        self.assertEqual(record.DistinguishedName, "keep")

    def test_scalar_uses_first_value(self):
        record = TypeInteger()
        unmarshal(Entry(DN, [EntryAttribute("beta", ["4", "22"])]), record)
        self.assertEqual(record.Alpha, 4)

    def test_attribute_names_ignore_case(self):
        record = TypeTags()
        unmarshal(Entry(DN, [EntryAttribute("BETA", ["x"])]), record)
        self.assertEqual(record.Alpha, "x")

    def test_list_gets_exactly_the_values(self):
        record = TypesAll(StringSlice=["stale"] * 5)
        unmarshal(
            Entry(DN, [EntryAttribute("stringSlice", ["one", "two", "three"])]), record
        )
        self.assertEqual(record.StringSlice, ["one", "two", "three"])

    def test_decode_all_types(self):
        record = TypesAll()
        unmarshal(
            Entry(
                DN,
                [
                    EntryAttribute("itIsAnInt16", ["4", "22"]),
                    EntryAttribute("intZero"),
                    EntryAttribute("floatPtr", [format_float(sys.float_info.max)]),
                    EntryAttribute("uint8", ["255"]),
                    EntryAttribute("stringPtr", ["string pointer"]),
                    EntryAttribute("stringSlice", ["one", "two", "three"]),
                    EntryAttribute("singleRaw", ["one"]),
                    EntryAttribute("multiRaw", ["one", "two", "three"]),
                    EntryAttribute("binaryEncoder", ["whatever"]),
                    EntryAttribute("bool", ["TRUE"]),
                    EntryAttribute("boolPtr", ["FALSE"]),
                ],
            ),
            record,
        )
        self.assertEqual(
            record,
            TypesAll(
                DN=DN,
                Int16=4,
                IntZero=0,
                FloatPtr=sys.float_info.max,
                Uint8=255,
                StringPtr="string pointer",
                StringSlice=["one", "two", "three"],
                Raw=b"one",
                RawSlice=[b"one", b"two", b"three"],
                BinaryEncoder=Token("whatever"),
                Bool=True,
                BoolPtr=False,
            ),
        )
        self.assertIsNone(record.RawSlice2)
        self.assertEqual(record._time, ZERO_TIMESTAMP)

    def test_missing_attribute_leaves_field_untouched(self):
        record = User(uid="alice", uidNumber=1001, mail=["a@example.com"])
        with self.assertLogs("django-ldapmarshal", level="DEBUG") as logs:
            unmarshal(Entry(DN, [EntryAttribute("uid", ["bob"])]), record)
        self.assertEqual(record.uid, "bob")
        self.assertEqual(record.uidNumber, 1001)
        self.assertEqual(record.mail, ["a@example.com"])
        self.assertTrue(
            any("ldapmarshal.decode.attribute-missing" in line for line in logs.output)
        )

    def test_parse_error_leaves_earlier_fields_decoded(self):
        record = User()
        with self.assertRaises(ValueError):
            unmarshal(
                Entry(
                    DN,
                    [
                        EntryAttribute("uid", ["alice"]),
                        EntryAttribute("uidNumber", ["-1"]),
                        EntryAttribute("mail", ["a@example.com"]),
                    ],
                ),
                record,
            )
        self.assertEqual(record.DN, DN)
        self.assertEqual(record.uid, "alice")
        self.assertEqual(record.mail, [])

    def test_read_only_fields_are_decoded(self):
        record = TypeReadOnly()
        unmarshal(
            Entry(DN, [EntryAttribute("createTimestamp", ["20240101000000.0Z"])]),
            record,
        )
        self.assertEqual(
            record.CreateTimestamp, datetime.datetime(2024, 1, 1, tzinfo=pytz.utc)
        )

    def test_unmarshaler(self):
        record = SelfMarshaling()
        unmarshal(Entry(DN, [EntryAttribute("cn", ["USERS"])]), record)
        self.assertEqual(record.cn, "users")

    def test_unmarshaler_disabled(self):
        record = SelfMarshaling()
        Decoder(use_interface=False).decode(
            Entry(DN, [EntryAttribute("cn", ["USERS"])]), record
        )
        self.assertEqual(record.cn, "USERS")


class TestRoundTrip(unittest.TestCase):

    def test_round_trip(self):
        record = User(
            DN="uid=alice,ou=people,dc=example,dc=com",
            uid="alice",
            uidNumber=1001,
            loginShell="/bin/bash",
            active=True,
            jpegPhoto=b"\xff\xd8\xff\xe0\x00\x10JFIF",
            mail=["alice@example.com", "asmith@example.com"],
            quota=1.5,
            pwdChangedTime=datetime.datetime(2024, 3, 4, 5, 6, 7, tzinfo=pytz.utc),
            token=Token("opaque"),
        )
        decoded = User()
        unmarshal(marshal(record), decoded)
        self.assertEqual(decoded, record)

    def test_round_trip_through_ldap_data(self):
        record = TypeEmbed(DN=DN, String="one")
        entry = Entry.from_ldap_data(marshal(record).to_ldap_data())
        decoded = TypeEmbed()
        unmarshal(entry, decoded)
        self.assertEqual(decoded, record)


class TestBatch(unittest.TestCase):

    def test_marshal_many(self):
        entries = marshal_many(
            [TypeEmbed(DN="cn=a", String="a"), TypeEmbed(DN="cn=b", String="b")]
        )
        self.assertEqual([e.dn for e in entries], ["cn=a", "cn=b"])

    def test_marshal_many_empty(self):
        self.assertEqual(marshal_many([]), [])

    def test_marshal_many_none(self):
        with self.assertRaises(NilInput):
            marshal_many(None)

    def test_marshal_many_stops_at_first_failure(self):
        with self.assertRaises(NoDN):
            marshal_many([TypeEmbed(DN="cn=a"), TypeEmbed(), TypeIntDN()])

    def test_unmarshal_many(self):
        records = unmarshal_many(
            [
                Entry("cn=a", [EntryAttribute("string", ["a"])]),
                Entry("cn=b", [EntryAttribute("string", ["b"])]),
            ],
            TypeEmbed,
        )
        self.assertEqual(
            records,
            [TypeEmbed(DN="cn=a", String="a"), TypeEmbed(DN="cn=b", String="b")],
        )
        self.assertIsNot(records[0].base, records[1].base)

    def test_unmarshal_many_none(self):
        with self.assertRaises(NilInput):
            unmarshal_many(None, TypeEmbed)

    def test_unmarshal_many_needs_a_model_class(self):
        with self.assertRaises(NotAStruct):
            unmarshal_many([Entry(DN)], dict)
        with self.assertRaises(NotAStruct):
            unmarshal_many([Entry(DN)], TypeEmbed())

    def test_unmarshal_many_stops_at_first_failure(self):
        with self.assertRaises(ValueError):
            unmarshal_many(
                [Entry(DN, [EntryAttribute("beta", ["x"])])], TypeInteger
            )


class TestWalker(unittest.TestCase):

    def test_has_dn(self):
        self.assertTrue(has_dn(TypeEmbed))
        self.assertTrue(has_dn(TypeTags))
        self.assertFalse(has_dn(TypeNoDN))

    def test_has_dn_through_embedding(self):
        class Inner(Model):
            DN = CharField()

        class Outer(Model):
            inner = EmbeddedField(Inner)

        self.assertTrue(has_dn(Outer))

    def test_ignored_dn_does_not_count(self):
        class Hidden(Model):
            DN = CharField(tag="-")

        self.assertFalse(has_dn(Hidden))

    def test_walk_flattens_embedded(self):
        record = TypeEmbed(DN=DN, String="x")
        walked = [(f.name, info.attr_name, owner) for f, info, owner in walk_fields(record)]
        self.assertEqual(walked, [("DN", "dn", record), ("String", "string", record.base)])

    def test_walk_skips_read_only_when_encoding(self):
        record = TypeReadOnly()
        self.assertEqual(
            [f.name for f, _, _ in walk_fields(record, encoding=True)], ["DN", "cn"]
        )
        self.assertEqual(
            [f.name for f, _, _ in walk_fields(record)],
            ["DN", "cn", "CreateTimestamp"],
        )
