import unittest

from idlcall.encoding import base58_encode, decode_address, hex_decode
from idlcall.errors import ParseError
from idlcall.parse import parse_address, parse_address_list, parse_value
from idlcall.types import FixedArray, ListType, Named, OptionalType, Primitive
from idlcall.values import (
    Absent,
    Bool,
    BytesList,
    FixedBytes,
    FixedU32s,
    Opaque,
    Present,
    Str,
    U8,
    U64,
    U128,
    format_value,
)

PROGRAM_ID = Primitive("program_id")


class ScalarParseTests(unittest.TestCase):
    def test_unsigned_integers(self) -> None:
        self.assertEqual(parse_value("255", Primitive("u8")), U8(255))
        self.assertEqual(parse_value("18446744073709551615", Primitive("u64")), U64(2**64 - 1))
        self.assertEqual(parse_value(str(2**128 - 1), Primitive("u128")), U128(2**128 - 1))

    def test_unsigned_rejects_out_of_range_and_non_decimal(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("256", Primitive("u8"))
        self.assertIn("out of range", str(ctx.exception))
        for raw in ("-1", "0x10", "1.5", "", " 7"):
            with self.assertRaises(ParseError):
                parse_value(raw, Primitive("u64"))

    def test_oversized_integer_text_is_a_parse_error(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("9" * 5000, Primitive("u64"), field="amount")
        self.assertEqual(ctx.exception.field, "amount")
        self.assertIn("out of range", str(ctx.exception))
        self.assertEqual(parse_value("0" * 5000 + "7", Primitive("u8")), U8(7))

    def test_bool(self) -> None:
        self.assertEqual(parse_value("true", Primitive("bool")), Bool(True))
        self.assertEqual(parse_value("0", Primitive("bool")), Bool(False))
        with self.assertRaises(ParseError) as ctx:
            parse_value("maybe", Primitive("bool"))
        self.assertIn("expected true/false", str(ctx.exception))

    def test_string_is_taken_verbatim(self) -> None:
        self.assertEqual(parse_value("hello world", Primitive("string")), Str("hello world"))

    def test_string_must_be_encodable(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("a\udcff", Primitive("string"), field="memo")
        self.assertTrue(str(ctx.exception).startswith("--memo: "))

    def test_field_label_prefixes_message(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("abc", Primitive("u32"), field="amount")
        self.assertEqual(ctx.exception.field, "amount")
        self.assertEqual(ctx.exception.raw, "abc")
        self.assertTrue(str(ctx.exception).startswith("--amount: "))


class ProgramIdParseTests(unittest.TestCase):
    def test_zero_forms_are_equivalent(self) -> None:
        zeros = FixedU32s((0,) * 8)
        self.assertEqual(parse_value("0,0,0,0,0,0,0,0", PROGRAM_ID), zeros)
        self.assertEqual(parse_value("00" * 32, PROGRAM_ID), zeros)

    def test_hex_and_decimal_components_match(self) -> None:
        a = parse_value("0x2a,1,2,3,4,5,6,7", PROGRAM_ID)
        b = parse_value("42,1,2,3,4,5,6,7", PROGRAM_ID)
        self.assertEqual(a, b)

    def test_hex64_is_little_endian_words(self) -> None:
        value = parse_value("01000000" + "00" * 28, PROGRAM_ID)
        self.assertEqual(value, FixedU32s((1, 0, 0, 0, 0, 0, 0, 0)))

    def test_wrong_component_count(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("1,2,3", PROGRAM_ID)
        self.assertIn("got 3", str(ctx.exception))

    def test_oversized_decimal_component(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("1,2,3,4,5,6,7," + "9" * 5000, PROGRAM_ID)
        self.assertIn("ProgramId[7]", str(ctx.exception))

    def test_invalid_component(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("1,2,3,4,5,6,7,4294967296", PROGRAM_ID)
        self.assertIn("ProgramId[7]", str(ctx.exception))


class ArrayParseTests(unittest.TestCase):
    def test_byte_array_from_hex(self) -> None:
        ty = FixedArray(Primitive("u8"), 4)
        self.assertEqual(parse_value("deadbeef", ty), FixedBytes(b"\xde\xad\xbe\xef"))
        self.assertEqual(parse_value("0xdeadbeef", ty), FixedBytes(b"\xde\xad\xbe\xef"))

    def test_byte_array_from_string_is_padded(self) -> None:
        ty = FixedArray(Primitive("u8"), 8)
        self.assertEqual(parse_value("abc", ty), FixedBytes(b"abc" + b"\0" * 5))

    def test_string_too_long_cites_both_sizes(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("abcdefghi", FixedArray(Primitive("u8"), 8))
        self.assertIn("9 bytes", str(ctx.exception))
        self.assertIn("max 8", str(ctx.exception))

    def test_unencodable_text_is_a_parse_error(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("a\udcff", FixedArray(Primitive("u8"), 8), field="label")
        self.assertEqual(ctx.exception.field, "label")
        self.assertIn("position 1", str(ctx.exception))

    def test_prefixed_hex_wrong_length(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("0xdead", FixedArray(Primitive("u8"), 4))
        self.assertIn("Expected 4 bytes from hex, got 2", str(ctx.exception))

    def test_odd_length_hex_cites_length(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_value("0xabc", FixedArray(Primitive("u8"), 2))
        self.assertIn("odd length: 3", str(ctx.exception))

    def test_word_array(self) -> None:
        ty = FixedArray(Primitive("u32"), 3)
        self.assertEqual(parse_value("1, 2, 3", ty), FixedU32s((1, 2, 3)))
        with self.assertRaises(ParseError):
            parse_value("1,2", ty)

    def test_other_arrays_are_opaque(self) -> None:
        value = parse_value("1,2", FixedArray(Primitive("u64"), 2))
        self.assertIsInstance(value, Opaque)
        self.assertEqual(value.raw, "1,2")


class ListOptionNamedTests(unittest.TestCase):
    def test_address_list(self) -> None:
        ty = ListType(FixedArray(Primitive("u8"), 32))
        raw = "11" * 32 + ",0x" + "22" * 32
        self.assertEqual(parse_value(raw, ty), BytesList((b"\x11" * 32, b"\x22" * 32)))
        self.assertEqual(parse_value("", ty), BytesList(()))

    def test_list_element_error_names_index(self) -> None:
        ty = ListType(FixedArray(Primitive("u8"), 4))
        with self.assertRaises(ParseError) as ctx:
            parse_value("aabbccdd,aabb", ty)
        self.assertIn("Element [1]", str(ctx.exception))

    def test_option(self) -> None:
        ty = OptionalType(Primitive("u64"))
        self.assertEqual(parse_value("none", ty), Absent())
        self.assertEqual(parse_value("", ty), Absent())
        self.assertEqual(parse_value("5", ty), Present(U64(5)))

    def test_named_type_is_opaque(self) -> None:
        self.assertEqual(parse_value("{x}", Named("Config")), Opaque("Config", "{x}"))


class AddressTests(unittest.TestCase):
    def test_hex_and_base58_agree(self) -> None:
        data = bytes(range(32))
        self.assertEqual(decode_address(data.hex()), data)
        self.assertEqual(decode_address("0x" + data.hex()), data)
        self.assertEqual(decode_address(base58_encode(data)), data)

    def test_all_digit_hex_is_not_read_as_base58(self) -> None:
        raw = "12" * 32
        self.assertEqual(parse_address(raw), bytes.fromhex(raw))

    def test_bad_address(self) -> None:
        with self.assertRaises(ParseError):
            parse_address("not-an-address!", field="owner-account")
        with self.assertRaises(ParseError) as ctx:
            parse_address("0x" + "11" * 31)
        self.assertIn("got 31", str(ctx.exception))

    def test_address_list_error_names_element(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse_address_list("11" * 32 + ",zz", field="extras-account")
        self.assertIn("Element [1]", str(ctx.exception))
        self.assertEqual(parse_address_list(""), [])

    def test_hex_decode_invalid_character(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            hex_decode("zz")
        self.assertIn("position 0", str(ctx.exception))


class FormatValueTests(unittest.TestCase):
    def test_printable_bytes_show_text_and_hex(self) -> None:
        rendered = format_value(FixedBytes(b"abc\0"))
        self.assertEqual(rendered, '"abc" (hex: 61626300)')

    def test_binary_bytes_show_hex(self) -> None:
        self.assertEqual(format_value(FixedBytes(b"\x00\x01")), "0x0001")

    def test_option(self) -> None:
        self.assertEqual(format_value(Present(U64(3))), "Some(3)")
        self.assertEqual(format_value(Absent()), "None")


if __name__ == "__main__":
    unittest.main()
