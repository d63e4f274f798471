"""Tests for the type reference parser."""

import pytest

from protorebuilder.metadata import MetadataError, TypeReference, parse_type_reference


def describe_parse_type_reference():
    def parses_simple_name(expect):
        ref = parse_type_reference("System.Int32")
        expect(ref.name) == "System.Int32"
        expect(ref.arguments) == ()
        expect(ref.array_rank) == 0
        expect(ref.is_generic) == False
        expect(ref.simple_name) == "Int32"

    def parses_global_name(expect):
        ref = parse_type_reference("Person")
        expect(ref.name) == "Person"
        expect(ref.simple_name) == "Person"

    def parses_nested_type_name(expect):
        ref = parse_type_reference("Acme.Contacts.Person/Types/PhoneType")
        expect(ref.name) == "Acme.Contacts.Person/Types/PhoneType"
        expect(ref.simple_name) == "PhoneType"

    def parses_generic_instance(expect):
        ref = parse_type_reference("Google.Protobuf.Collections.RepeatedField`1<System.String>")
        expect(ref.name) == "Google.Protobuf.Collections.RepeatedField`1"
        expect(ref.is_generic) == True
        expect(ref.simple_name) == "RepeatedField"
        expect(ref.arguments) == (TypeReference(name="System.String"),)

    def parses_generic_with_several_arguments(expect):
        ref = parse_type_reference(
            "Google.Protobuf.Collections.MapField`2<System.String, Acme.Contacts.Person/Types/PhoneNumber>"
        )
        expect(len(ref.arguments)) == 2
        expect(ref.arguments[1].name) == "Acme.Contacts.Person/Types/PhoneNumber"
        expect(ref.full_name) == (
            "Google.Protobuf.Collections.MapField`2<System.String,Acme.Contacts.Person/Types/PhoneNumber>"
        )

    def parses_nested_generic_arguments(expect):
        ref = parse_type_reference(
            "Google.Protobuf.Collections.RepeatedField`1<System.Nullable`1<System.Int32>>"
        )
        inner = ref.arguments[0]
        expect(inner.name) == "System.Nullable`1"
        expect(inner.arguments[0].name) == "System.Int32"

    def parses_arrays(expect):
        ref = parse_type_reference("System.Byte[][]")
        expect(ref.name) == "System.Byte"
        expect(ref.array_rank) == 2
        expect(str(ref)) == "System.Byte[][]"

    def rejects_unbalanced_brackets():
        with pytest.raises(MetadataError, match="Invalid type reference"):
            parse_type_reference("System.Nullable`1<System.Int32")

    def rejects_empty_text():
        with pytest.raises(MetadataError):
            parse_type_reference("")
