"""Tests for nesting, dependency and enum pruning analysis."""

import pytest

from protorebuilder.rebuilder import InvariantViolation, RebuildContext, TypeMapping
from protorebuilder.rebuilder import analyzer
from protorebuilder.rebuilder.analyzer import (
    connect_child_types,
    populate_message_dependencies,
    remove_unreferenced_enums,
)
from protorebuilder.rebuilder.discovery import gather_relevant_types, populate_message_fields
from protorebuilder.tests.factories import REPEATED, TIMESTAMP, assembly, enum, message, static_class


def _analyze(*types):
    ctx = RebuildContext(assembly=assembly(*types))
    gather_relevant_types(ctx)
    populate_message_fields(ctx)
    connect_child_types(ctx)
    populate_message_dependencies(ctx)
    return ctx


def _person():
    return message(
        "Person",
        "Acme",
        fields=[
            ("Name", 1, "System.String"),
            ("Phones", 2, REPEATED.format("Acme.Person/Types/PhoneNumber")),
            ("LastUpdated", 3, TIMESTAMP),
        ],
        nested=[
            message(
                "PhoneNumber",
                parent="Acme.Person/Types",
                fields=[("Type", 1, "Acme.Person/Types/PhoneType")],
            ),
            enum("PhoneType", [("Mobile", 0), ("Home", 1)]),
        ],
    )


def describe_connect_child_types():
    def links_types_in_types_holder(expect):
        ctx = _analyze(_person())
        person = ctx.messages["Acme.Person"]
        expect(person.nested_messages) == ["Acme.Person/Types/PhoneNumber"]
        expect(person.nested_enums) == ["Acme.Person/Types/PhoneType"]

    def links_oneof_case_enums_declared_on_the_message(expect):
        ctx = _analyze(message("Shape", "Acme", oneofs=[("Kind", [("Circle", 1, "System.Double")])]))
        expect(ctx.messages["Acme.Shape"].nested_enums) == ["Acme.Shape/KindOneofCase"]

    def rejects_messages_unreachable_from_roots():
        outer = message("Outer", "Acme")
        outer.nested_types.append(static_class("Holder", nested=[message("Lost")]))
        with pytest.raises(InvariantViolation, match="Acme.Outer/Holder/Lost"):
            _analyze(outer)

    def rejects_enums_unreachable_from_their_message():
        outer = message("Outer", "Acme", fields=[("Kind", 1, "Acme.Outer/Holder/Kind")])
        outer.nested_types.append(static_class("Holder", nested=[enum("Kind", [("Unknown", 0)])]))
        with pytest.raises(InvariantViolation, match="enums are not nested under any message: Acme.Outer/Holder/Kind"):
            _analyze(outer)


def describe_populate_message_dependencies():
    def records_dependencies_and_imports(expect):
        ctx = _analyze(
            _person(),
            message("AddressBook", "Acme", fields=[("People", 1, REPEATED.format("Acme.Person"))]),
        )
        person = ctx.messages["Acme.Person"]
        expect(person.depends_on_messages) == {"Acme.Person/Types/PhoneNumber"}
        expect(person.imports) == {"google/protobuf/timestamp.proto"}
        expect(ctx.messages["Acme.AddressBook"].depends_on_messages) == {"Acme.Person"}

    def records_dependencies_of_nested_messages(expect):
        ctx = _analyze(_person())
        phone_number = ctx.messages["Acme.Person/Types/PhoneNumber"]
        expect(phone_number.depends_on_enums) == {"Acme.Person/Types/PhoneType"}

    def records_oneof_member_dependencies(expect):
        ctx = _analyze(
            enum("Color", [("Red", 0)], namespace="Acme"),
            message("Paint", "Acme", oneofs=[("Finish", [("Color", 1, "Acme.Color")])]),
        )
        expect(ctx.messages["Acme.Paint"].depends_on_enums) == {"Acme.Color"}

    def ignores_unmappable_fields(expect):
        ctx = _analyze(message("Blob", "Acme", fields=[("Id", 1, "System.Guid")]))
        blob = ctx.messages["Acme.Blob"]
        expect(blob.depends_on_messages) == set()
        expect(blob.imports) == set()

    def rejects_references_to_unknown_types(monkeypatch):
        monkeypatch.setattr(
            analyzer,
            "map_type",
            lambda ctx, ref: TypeMapping("acme.Ghost", internal_types=("Acme.Ghost",)),
        )
        with pytest.raises(InvariantViolation, match="Acme.Ghost"):
            _analyze(message("Haunted", "Acme", fields=[("Ghost", 1, "Acme.Ghost")]))


def describe_remove_unreferenced_enums():
    def removes_enums_no_field_uses(expect):
        ctx = _analyze(
            enum("Color", [("Red", 0)], namespace="Acme"),
            enum("Unused", [("None", 0)], namespace="Acme"),
            message("Paint", "Acme", fields=[("Color", 1, "Acme.Color")]),
        )
        expect(remove_unreferenced_enums(ctx)) == 1
        expect(list(ctx.enums)) == ["Acme.Color"]

    def removes_oneof_case_enums(expect):
        ctx = _analyze(message("Shape", "Acme", oneofs=[("Kind", [("Circle", 1, "System.Double")])]))
        remove_unreferenced_enums(ctx)
        expect(ctx.enums) == {}
        expect(ctx.messages["Acme.Shape"].nested_enums) == []

    def keeps_enums_used_by_nested_messages(expect):
        ctx = _analyze(_person())
        expect(remove_unreferenced_enums(ctx)) == 0
        expect(ctx.messages["Acme.Person"].nested_enums) == ["Acme.Person/Types/PhoneType"]
