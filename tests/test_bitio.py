import io

import pytest

from bitio import CompressorBitio


def _writer():
    stream = io.BytesIO()
    return stream, CompressorBitio.BitFile.wrap_stream(stream, False)


def test_output_bit_packs_msb_first():
    stream, bit_file = _writer()
    for bit in (1, 0, 1, 1, 0, 0, 0, 1):
        bit_file.output_bit(bit)
    assert stream.getvalue() == bytes([0b10110001])


def test_close_pads_partial_byte_with_zeros():
    stream, bit_file = _writer()
    for bit in (1, 1, 1):
        bit_file.output_bit(bit)
    assert stream.getvalue() == b""
    bit_file.close_bit_file()
    assert stream.getvalue() == bytes([0b11100000])
    assert not stream.closed


def test_close_on_byte_boundary_writes_nothing_extra():
    stream, bit_file = _writer()
    bit_file.output_bits(0xA5, 8)
    bit_file.close_bit_file()
    assert stream.getvalue() == b"\xa5"


def test_output_bits_spans_bytes():
    stream, bit_file = _writer()
    bit_file.output_bits(0b101, 3)
    bit_file.output_bits(0x3FF, 10)
    bit_file.close_bit_file()
    assert stream.getvalue() == bytes([0b10111111, 0b11111000])


def test_output_bits_zero_count_is_noop():
    stream, bit_file = _writer()
    bit_file.output_bits(0, 0)
    bit_file.close_bit_file()
    assert stream.getvalue() == b""


def test_input_bit_reads_back_bits():
    bit_file = CompressorBitio.BitFile.wrap_stream(io.BytesIO(bytes([0b10110001, 0x80])), True)
    bits = [bit_file.input_bit() for _ in range(9)]
    assert bits == [1, 0, 1, 1, 0, 0, 0, 1, 1]


def test_input_bits_reads_multi_bit_values():
    bit_file = CompressorBitio.BitFile.wrap_stream(io.BytesIO(bytes([0b10111111, 0b11111000])), True)
    assert bit_file.input_bits(3) == 0b101
    assert bit_file.input_bits(10) == 0x3FF
    assert bit_file.input_bits(3) == 0


def test_input_bit_raises_eof_when_exhausted():
    bit_file = CompressorBitio.BitFile.wrap_stream(io.BytesIO(b"\x00"), True)
    for _ in range(8):
        assert bit_file.input_bit() == 0
    with pytest.raises(EOFError):
        bit_file.input_bit()


def test_owned_file_is_closed(tmp_path):
    name = str(tmp_path / "bits.bin")
    bit_file = CompressorBitio.BitFile.open_output_bit_file(name)
    bit_file.output_bit(1)
    bit_file.close_bit_file()
    assert bit_file.file_stream.closed
    with open(name, "rb") as f:
        assert f.read() == b"\x80"


def test_pacifier_prints_dots(capsys):
    stream = io.BytesIO()
    bit_file = CompressorBitio.BitFile(stream, False, pacifier=True, owns_stream=False)
    for _ in range(CompressorBitio.PACIFIER_COUNT + 1):
        bit_file.output_bits(0xFF, 8)
    assert capsys.readouterr().out == "."
