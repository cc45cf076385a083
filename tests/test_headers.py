import datetime
import warnings
from unittest import TestCase

from dbfstream.exceptions import ErrorKind, ShortReadError
from dbfstream.formats import Header, FieldDescriptor
from dbfstream.headers import decode_field_descriptors, decode_header, format_header_summary, validate_fields
from dbfstream.warninghandler import DBFWarning, set_global_warn

from dbfbuild import build_header, field_descriptor, people_dbf


class TestDecodeHeader(TestCase):
    def test_fields(self):
        header = decode_header(build_header(file_type=0x03, date=(124, 10, 19), nrecords=5, header_nbytes=193, record_nbytes=29))
        self.assertEqual(header.file_type, "FoxBASE+/Dbase III plus, no memo")
        self.assertEqual(header.file_type_code, 0x03)
        self.assertEqual(header.date_updated, datetime.date(2024, 10, 19))
        self.assertEqual(header.nrecords, 5)
        self.assertEqual(header.header_nbytes, 193)
        self.assertEqual(header.record_nbytes, 29)
        self.assertEqual(header.fields, ())
        self.assertEqual(header.expected_file_nbytes, 193 + 5 * 29)

    def test_unknown_file_type(self):
        header = decode_header(build_header(file_type=0x7F, nrecords=1))
        self.assertEqual(header.file_type, "unknown")
        self.assertEqual(header.file_type_code, 0x7F)

    def test_visual_foxpro(self):
        self.assertEqual(decode_header(build_header(file_type=0x30)).file_type, "Visual FoxPro")

    def test_reserved_bytes_ignored(self):
        plain = decode_header(build_header(nrecords=3, header_nbytes=65, record_nbytes=11))
        noisy = decode_header(build_header(nrecords=3, header_nbytes=65, record_nbytes=11, reserved=b"\xff" * 20))
        self.assertEqual(plain, noisy)

    def test_large_counts_are_unsigned(self):
        header = decode_header(build_header(nrecords=0xFFFFFFF0, header_nbytes=0xFFFF, record_nbytes=0x8001))
        self.assertEqual(header.nrecords, 0xFFFFFFF0)
        self.assertEqual(header.header_nbytes, 0xFFFF)
        self.assertEqual(header.record_nbytes, 0x8001)

    def test_implausible_date(self):
        header = decode_header(build_header(date=(95, 0, 0), nrecords=1))
        self.assertIsNone(header.date_updated)

    def test_extra_bytes_ignored(self):
        header = decode_header(build_header(nrecords=2) + b"\x00" * 100)
        self.assertEqual(header.nrecords, 2)

    def test_short_buffer(self):
        with self.assertRaises(ShortReadError) as ctx:
            decode_header(b"\x03" * 31)
        self.assertIs(ctx.exception.kind, ErrorKind.SHORT_READ)


class TestDecodeFieldDescriptors(TestCase):
    def test_entries(self):
        block = (
            field_descriptor("NAME", "C", 10, displacement=1)
            + field_descriptor("PRICE", "N", 8, decimal_places=2, displacement=11, flag=4)
            + b"\x0d"
        )
        fields = decode_field_descriptors(block)
        self.assertEqual(fields, [
            FieldDescriptor(name="NAME", type="C", displacement=1, nbytes=10, decimal_places=0, flag=0),
            FieldDescriptor(name="PRICE", type="N", displacement=11, nbytes=8, decimal_places=2, flag=4),
        ])

    def test_full_length_name(self):
        fields = decode_field_descriptors(field_descriptor("ABCDEFGHIJK", "C", 1))
        self.assertEqual(fields[0].name, "ABCDEFGHIJK")

    def test_only_trailing_nuls_trimmed(self):
        entry = b"AB\x00CD" + b"\x00" * 6 + field_descriptor("X", "C", 1)[11:]
        self.assertEqual(decode_field_descriptors(entry)[0].name, "AB\x00CD")

    def test_remainder_discarded(self):
        block = field_descriptor("A", "C", 1) + b"\x0d" + b"\x00" * 30
        self.assertEqual(len(decode_field_descriptors(block)), 1)

    def test_no_complete_entry(self):
        self.assertEqual(decode_field_descriptors(b""), [])
        self.assertEqual(decode_field_descriptors(b"\x0d"), [])
        self.assertEqual(decode_field_descriptors(b"\x00" * 31), [])

    def test_name_encoding(self):
        fields = decode_field_descriptors(field_descriptor("ЦЕНА", "N", 5, encoding="cp866"), encoding="cp866")
        self.assertEqual(fields[0].name, "ЦЕНА")

    def test_sample_table(self):
        data = people_dbf()
        header = decode_header(data[:32])
        fields = decode_field_descriptors(data[32:header.header_nbytes])
        self.assertEqual([f.name for f in fields], ["NAME", "AGE", "SCORE", "ACTIVE", "BORN"])
        self.assertEqual([f.type for f in fields], ["C", "N", "N", "L", "D"])
        self.assertEqual(1 + sum(f.nbytes for f in fields), header.record_nbytes)


class TestValidateFields(TestCase):
    def setUp(self):
        set_global_warn("api")

    def _header(self, record_nbytes, names=("A", "B"), file_type_code=0x03, file_type="FoxBASE"):
        fields = tuple(FieldDescriptor(n, "C", displacement=1 + 4 * i, nbytes=4, decimal_places=0, flag=0)
                       for i, n in enumerate(names))
        return Header(file_type, file_type_code, None, 1, 32 + 32 * len(names) + 1, record_nbytes, fields)

    def test_consistent(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            self.assertTrue(validate_fields(self._header(9)))

    def test_length_mismatch(self):
        with self.assertWarns(DBFWarning):
            self.assertFalse(validate_fields(self._header(12)))

    def test_duplicate_names(self):
        with self.assertWarns(DBFWarning):
            self.assertFalse(validate_fields(self._header(9, names=("A", "A"))))

    def test_unknown_type_still_valid(self):
        with self.assertWarns(DBFWarning):
            self.assertTrue(validate_fields(self._header(9, file_type_code=0x7F, file_type="unknown")))

    def test_summary(self):
        summary = format_header_summary(self._header(9))
        self.assertIn("1 records of 9 bytes", summary)
        self.assertIn("A:C4,B:C4", summary)
