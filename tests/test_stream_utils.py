"""
数据流工具单元测试

运行方式: pytest tests/test_stream_utils.py -v
"""

import asyncio
import io
import pytest
import sys
import os

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, "wechat-sdk"))

import aiohttp

from wechat_sdk import StreamError, DecodeError
from wechat_sdk.stream import (
    copy_to,
    read_as_buffer,
    read_as_string,
    read_as_json,
    decode_raw,
    is_raw_encoding,
    is_readable,
)


async def chunks(*parts, fail_with=None):
    """按顺序产出数据块，可选在最后抛出异常"""
    for part in parts:
        await asyncio.sleep(0)
        yield part
    if fail_with is not None:
        raise fail_with


class AsyncSink:
    """write 为协程的目标流"""

    def __init__(self, fail_after=None):
        self.chunks = []
        self.fail_after = fail_after
        self.closed = False

    async def write(self, chunk):
        if self.fail_after is not None and len(self.chunks) >= self.fail_after:
            raise ConnectionResetError("sink closed")
        self.chunks.append(chunk)


class TestReadAsBuffer:
    """读取为 bytes 测试"""

    @pytest.mark.asyncio
    async def test_async_iterable_in_order(self):
        data = await read_as_buffer(chunks(b"a", b"bc", b"def"))
        assert data == b"abcdef"

    @pytest.mark.asyncio
    async def test_file_like(self):
        data = await read_as_buffer(io.BytesIO(b"x" * 10000), chunk_size=1024)
        assert data == b"x" * 10000

    @pytest.mark.asyncio
    async def test_asyncio_stream_reader(self):
        reader = asyncio.StreamReader()
        reader.feed_data(b"hello ")
        reader.feed_data(b"world")
        reader.feed_eof()

        assert await read_as_buffer(reader) == b"hello world"

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await read_as_buffer(chunks()) == b""

    @pytest.mark.asyncio
    async def test_error_discards_partial_data(self):
        with pytest.raises(StreamError) as exc_info:
            await read_as_buffer(chunks(b"partial", fail_with=RuntimeError("boom")))

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_non_bytes_chunk(self):
        with pytest.raises(StreamError):
            await read_as_buffer(chunks("text"))


class TestReadAsString:
    """读取为字符串测试"""

    @pytest.mark.asyncio
    async def test_default_utf8(self):
        text = await read_as_string(chunks("你好".encode("utf-8")))
        assert text == "你好"

    @pytest.mark.asyncio
    async def test_multibyte_split_across_chunks(self):
        encoded = "微信".encode("utf-8")
        text = await read_as_string(chunks(encoded[:2], encoded[2:]))
        assert text == "微信"

    @pytest.mark.asyncio
    async def test_bom_is_kept(self):
        text = await read_as_string(chunks(b"\xef\xbb\xbfhi"))
        assert text == "\ufeffhi"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("encoding,expected", [
        ("hex", "00ff10"),
        ("base64", "AP8Q"),
        ("latin1", "\x00\xff\x10"),
        ("binary", "\x00\xff\x10"),
    ])
    async def test_binary_encodings(self, encoding, expected):
        assert await read_as_string(chunks(b"\x00\xff\x10"), encoding) == expected

    @pytest.mark.asyncio
    async def test_unknown_raw_encoding(self):
        with pytest.raises(DecodeError):
            await read_as_string(chunks(b"abc"), "gbk")


class TestReadAsJson:
    """读取为 JSON 测试"""

    @pytest.mark.asyncio
    async def test_parse_object(self):
        value = await read_as_json(chunks(b'{"errcode":', b'0,"list":[1,2]}'))
        assert value == {"errcode": 0, "list": [1, 2]}

    @pytest.mark.asyncio
    async def test_malformed(self):
        with pytest.raises(DecodeError):
            await read_as_json(chunks(b'{"errcode":'))

    @pytest.mark.asyncio
    async def test_non_standard_constant_rejected(self):
        with pytest.raises(DecodeError):
            await read_as_json(chunks(b"[NaN]"))

    @pytest.mark.asyncio
    async def test_custom_loads(self):
        value = await read_as_json(chunks(b"[1]"), loads=lambda text: ("custom", text))
        assert value == ("custom", "[1]")


class TestCopyTo:
    """流复制测试"""

    @pytest.mark.asyncio
    async def test_copy_leaves_destination_open(self):
        destination = io.BytesIO()
        written = await copy_to(chunks(b"abc", b"def"), destination)

        assert written == 6
        assert destination.getvalue() == b"abcdef"
        assert not destination.closed

    @pytest.mark.asyncio
    async def test_async_destination(self):
        sink = AsyncSink()
        await copy_to(chunks(b"1", b"2", b"3"), sink)

        assert sink.chunks == [b"1", b"2", b"3"]
        assert not sink.closed

    @pytest.mark.asyncio
    async def test_stream_writer_is_drained(self):
        class DrainingWriter:
            def __init__(self):
                self.data = b""
                self.drains = 0

            def write(self, chunk):
                self.data += chunk

            async def drain(self):
                self.drains += 1

        writer = DrainingWriter()
        await copy_to(chunks(b"a", b"b"), writer)

        assert writer.data == b"ab"
        assert writer.drains == 2

    @pytest.mark.asyncio
    async def test_source_error(self):
        with pytest.raises(StreamError):
            await copy_to(chunks(b"a", fail_with=OSError("reset")), io.BytesIO())

    @pytest.mark.asyncio
    async def test_destination_error(self):
        with pytest.raises(StreamError) as exc_info:
            await copy_to(chunks(b"a", b"b", b"c"), AsyncSink(fail_after=1))

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)

    @pytest.mark.asyncio
    async def test_multipart_payload_source(self):
        with aiohttp.MultipartWriter("form-data", boundary="test-boundary") as writer:
            part = writer.append("value")
            part.set_content_disposition("form-data", name="field")

        destination = io.BytesIO()
        await copy_to(writer, destination)
        body = destination.getvalue()

        assert b"--test-boundary\r\n" in body
        assert b'name="field"' in body
        assert b"value" in body
        assert body.rstrip().endswith(b"--test-boundary--")

    @pytest.mark.asyncio
    async def test_unsupported_source(self):
        with pytest.raises(TypeError):
            await copy_to("not a stream", io.BytesIO())

    @pytest.mark.asyncio
    async def test_unsupported_destination(self):
        with pytest.raises(TypeError):
            await copy_to(chunks(b"a"), object())


class TestEncodings:
    """直接编码测试"""

    def test_raw_encoding_names(self):
        for name in ("ascii", "utf8", "utf-8", "utf16le", "ucs2", "ucs-2",
                     "base64", "base64url", "latin1", "binary", "hex"):
            assert is_raw_encoding(name)
        assert not is_raw_encoding("UTF-8")
        assert not is_raw_encoding("Hex")
        assert not is_raw_encoding("gbk")
        assert not is_raw_encoding(None)

    def test_decode_utf16le(self):
        assert decode_raw("微信".encode("utf-16-le"), "utf16le") == "微信"

    def test_decode_base64url_without_padding(self):
        assert decode_raw(b"\xfb\xff", "base64url") == "-_8"

    def test_invalid_utf8_is_replaced(self):
        assert decode_raw(b"a\xffb", "utf-8") == "a\ufffdb"

    def test_ascii_clears_high_bit(self):
        assert decode_raw(b"\xe9", "ascii") == "i"
        assert decode_raw(b"abc\x80", "ascii") == "abc\x00"

    @pytest.mark.asyncio
    async def test_uppercase_name_is_not_raw(self):
        with pytest.raises(DecodeError):
            await read_as_string(chunks(b"x"), "UTF-8")

    def test_is_readable(self):
        assert is_readable(io.BytesIO())
        assert is_readable(chunks())
        assert not is_readable(b"bytes")
        assert not is_readable("text")
        assert not is_readable(None)
