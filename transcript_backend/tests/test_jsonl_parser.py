import json
import unittest

from transcript_backend.errors import MalformedRecordError
from transcript_backend.parsers.jsonl import parse_jsonl, parse_records


class JsonlParserTests(unittest.TestCase):
    def test_blank_and_whitespace_lines_are_skipped(self) -> None:
        blob = '{"uuid": "a"}\n\n   \n{"uuid": "b"}\n'

        records = parse_jsonl(blob)

        self.assertEqual([r["uuid"] for r in records], ["a", "b"])

    def test_bytes_are_decoded_as_utf8(self) -> None:
        blob = json.dumps({"text": "héllo"}, ensure_ascii=False).encode("utf-8")

        self.assertEqual(parse_jsonl(blob), [{"text": "héllo"}])

    def test_bad_line_reports_one_based_line_number(self) -> None:
        blob = '{"uuid": "a"}\nnot json\n{"uuid": "c"}'

        with self.assertRaises(MalformedRecordError) as ctx:
            parse_jsonl(blob, source="sess-1.jsonl")

        self.assertEqual(ctx.exception.line_number, 2)
        self.assertEqual(ctx.exception.source, "sess-1.jsonl")
        self.assertIn("sess-1.jsonl line 2", str(ctx.exception))

    def test_line_numbers_count_skipped_blank_lines(self) -> None:
        with self.assertRaises(MalformedRecordError) as ctx:
            parse_jsonl('\n\n{"uuid": "a"}\n{broken')

        self.assertEqual(ctx.exception.line_number, 4)

    def test_non_object_lines_are_rejected(self) -> None:
        with self.assertRaises(MalformedRecordError) as ctx:
            parse_jsonl('{"uuid": "a"}\n[1, 2]')

        self.assertEqual(ctx.exception.line_number, 2)

    def test_invalid_utf8_is_malformed(self) -> None:
        with self.assertRaises(MalformedRecordError) as ctx:
            parse_jsonl(b"\xff\xfe{}", source="bad.jsonl")

        self.assertEqual(ctx.exception.line_number, 0)

    def test_empty_blob_yields_no_records(self) -> None:
        self.assertEqual(parse_jsonl(""), [])
        self.assertEqual(parse_records(b"\n\n"), [])


class RecordParserTests(unittest.TestCase):
    def test_records_keep_unknown_fields(self) -> None:
        line = {
            "type": "queue-operation",
            "operation": "enqueue",
            "sessionId": "sess-1",
            "timestamp": "2026-02-01T05:00:00Z",
            "content": "queued prompt",
        }

        records = parse_records(json.dumps(line))

        self.assertEqual(records[0].type, "queue-operation")
        self.assertEqual(records[0].model_dump(exclude_unset=True), line)

    def test_string_and_block_message_content_both_parse(self) -> None:
        blob = "\n".join(
            [
                json.dumps({"type": "user", "message": {"role": "user", "content": "hi"}}),
                json.dumps(
                    {
                        "type": "assistant",
                        "message": {"role": "assistant", "content": [{"type": "text", "text": "hello"}]},
                    }
                ),
            ]
        )

        records = parse_records(blob)

        self.assertEqual(records[0].message.content, "hi")
        self.assertEqual(records[1].message.content[0].text, "hello")

    def test_unexpected_types_on_passthrough_fields_round_trip(self) -> None:
        line = {
            "type": "assistant",
            "sessionId": "sess-1",
            "timestamp": "2026-02-01T05:00:00Z",
            "version": 2,
            "cwd": None,
            "isSidechain": "yes",
            "message": {
                "role": "assistant",
                "model": {"id": "claude"},
                "content": ["plain", {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {}}, 7],
            },
        }

        records = parse_records(json.dumps(line), source="sess-1.jsonl")

        self.assertEqual(records[0].model_dump(exclude_unset=True), line)
        self.assertEqual(records[0].message.content[1].name, "Read")

    def test_non_object_message_passes_through(self) -> None:
        line = {"type": "summary", "message": "compacted", "leafUuid": "abc"}

        records = parse_records(json.dumps(line))

        self.assertEqual(records[0].model_dump(exclude_unset=True), line)

    def test_wrongly_typed_known_field_is_malformed(self) -> None:
        blob = '{"uuid": "a"}\n{"uuid": "b", "sessionId": 42}'

        with self.assertRaises(MalformedRecordError) as ctx:
            parse_records(blob, source="sess-1.jsonl")

        self.assertEqual(ctx.exception.line_number, 2)
        self.assertIn("sessionId", ctx.exception.reason)


if __name__ == "__main__":
    unittest.main()
