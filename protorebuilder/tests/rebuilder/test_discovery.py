"""Tests for message and enum discovery."""

import pytest

from protorebuilder.metadata import FieldDescriptor, MetadataError, MissingDependencyError, PropertyDescriptor
from protorebuilder.rebuilder import RebuildContext
from protorebuilder.rebuilder.discovery import check_dependencies, gather_relevant_types, populate_message_fields
from protorebuilder.tests.factories import REPEATED, TIMESTAMP, assembly, enum, message, static_class


def _discover(*types):
    ctx = RebuildContext(assembly=assembly(*types))
    gather_relevant_types(ctx)
    populate_message_fields(ctx)
    return ctx


def describe_check_dependencies():
    def accepts_protobuf_reference(expect):
        expect(check_dependencies(assembly())) == None

    def rejects_missing_protobuf_reference():
        with pytest.raises(MissingDependencyError, match="Google.Protobuf assembly reference not found"):
            check_dependencies(assembly(references=()))


def describe_gather_relevant_types():
    def finds_messages_and_enums(expect):
        ctx = _discover(
            message("Person", "Acme"),
            enum("Color", [("Red", 0)], namespace="Acme"),
            static_class("Helpers", "Acme"),
        )
        expect(list(ctx.messages)) == ["Acme.Person"]
        expect(list(ctx.enums)) == ["Acme.Color"]

    def records_outermost_message_as_root(expect):
        ctx = _discover(
            message(
                "Person",
                "Acme",
                nested=[
                    message(
                        "PhoneNumber",
                        parent="Acme.Person/Types",
                        nested=[enum("Kind", [("Unknown", 0)])],
                    ),
                ],
            )
        )
        expect(ctx.messages["Acme.Person"].is_root) == True
        expect(ctx.messages["Acme.Person/Types/PhoneNumber"].root_message) == "Acme.Person"
        expect(ctx.enums["Acme.Person/Types/PhoneNumber/Types/Kind"].root_message) == "Acme.Person"

    def treats_enums_in_plain_classes_as_roots(expect):
        ctx = _discover(static_class("Holder", "Acme", nested=[enum("Color", [("Red", 0)])]))
        expect(ctx.enums["Acme.Holder/Color"].is_root) == True

    def orders_enum_values_by_value(expect):
        ctx = _discover(enum("Level", [("High", 10), ("Low", -1), ("Unset", 0)], namespace="Acme"))
        expect(ctx.enums["Acme.Level"].value_pairs) == [("Low", -1), ("Unset", 0), ("High", 10)]


def describe_populate_message_fields():
    def reads_fields_from_field_number_constants(expect):
        ctx = _discover(
            message(
                "Person",
                "Acme",
                fields=[
                    ("Name", 1, "System.String"),
                    ("Phones", 4, REPEATED.format("System.String")),
                    ("LastUpdated", 5, TIMESTAMP),
                ],
            )
        )
        fields = ctx.messages["Acme.Person"].fields
        expect([(f.name, f.number) for f in fields]) == [("Name", 1), ("Phones", 4), ("LastUpdated", 5)]
        expect(fields[1].value_type.arguments[0].name) == "System.String"
        expect(fields[0].is_oneof_member) == False

    def reads_oneofs_from_case_properties(expect):
        ctx = _discover(
            message(
                "Shape",
                "Acme",
                fields=[("Label", 1, "System.String")],
                oneofs=[("Kind", [("Circle", 3, "System.Double"), ("Square", 4, "System.Double")])],
            )
        )
        shape = ctx.messages["Acme.Shape"]
        expect([f.name for f in shape.fields]) == ["Label"]
        expect(len(shape.oneofs)) == 1
        oneof = shape.oneofs[0]
        expect(oneof.name) == "Kind"
        expect(oneof.discriminator) == "Acme.Shape/KindOneofCase"
        expect([(m.name, m.number) for m in oneof.members]) == [("Circle", 3), ("Square", 4)]
        expect(all(m.is_oneof_member for m in oneof.members)) == True
        expect([f.number for f in shape.all_fields()]) == [1, 3, 4]

    def detects_explicit_presence(expect):
        ctx = _discover(
            message(
                "Person",
                "Acme",
                fields=[("Nickname", 1, "System.String"), ("Name", 2, "System.String")],
                optional=["Nickname"],
            )
        )
        fields = ctx.messages["Acme.Person"].fields
        expect(fields[0].has_explicit_presence) == True
        expect(fields[1].has_explicit_presence) == False

    def ignores_writable_presence_properties(expect):
        person = message("Person", "Acme", fields=[("Nickname", 1, "System.String")])
        person.properties.append(PropertyDescriptor(name="HasNickname", type="System.Boolean", has_setter=True))
        ctx = _discover(person)
        expect(ctx.messages["Acme.Person"].fields[0].has_explicit_presence) == False

    def rejects_duplicate_field_numbers():
        person = message("Person", "Acme", fields=[("Name", 1, "System.String")])
        person.fields.append(FieldDescriptor(name="AliasFieldNumber", type="System.Int32", constant=1, is_static=True))
        person.properties.append(PropertyDescriptor(name="Alias", type="System.String"))
        with pytest.raises(MetadataError, match="Field number 1 is used by both Name and Alias"):
            _discover(person)

    def rejects_field_without_property():
        person = message("Person", "Acme")
        person.fields.append(FieldDescriptor(name="NameFieldNumber", type="System.Int32", constant=1, is_static=True))
        with pytest.raises(MetadataError, match="No property was found for field NameFieldNumber"):
            _discover(person)

    def rejects_oneof_member_without_property():
        shape = message("Shape", "Acme", oneofs=[("Kind", [("Circle", 3, "System.Double")])])
        shape.properties = [p for p in shape.properties if p.name != "Circle"]
        with pytest.raises(MetadataError, match="No property was found for oneof Kind field Circle"):
            _discover(shape)
