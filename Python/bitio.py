import sys
from typing import BinaryIO


class CompressorBitio:
    PACIFIER_COUNT = 2047

    class BitFile:
        def __init__(self, stream: BinaryIO, input_mode: bool, pacifier: bool = False, owns_stream: bool = True):
            self.is_input = input_mode
            self.file_stream: BinaryIO = stream
            self.owns_stream = owns_stream
            self.pacifier = pacifier
            self.rack: int = 0
            self.mask: int = 0x80
            self.pacifier_counter: int = 0

        @staticmethod
        def open_output_bit_file(name: str, pacifier: bool = False) -> 'CompressorBitio.BitFile':
            return CompressorBitio.BitFile(open(name, "wb"), False, pacifier)

        @staticmethod
        def open_input_bit_file(name: str, pacifier: bool = False) -> 'CompressorBitio.BitFile':
            return CompressorBitio.BitFile(open(name, "rb"), True, pacifier)

        @staticmethod
        def wrap_stream(stream: BinaryIO, input_mode: bool) -> 'CompressorBitio.BitFile':
            """Bit file over a stream the caller keeps ownership of."""
            return CompressorBitio.BitFile(stream, input_mode, owns_stream=False)

        def close_bit_file(self):
            # Pad the partial byte with zero bits.
            try:
                if not self.is_input and self.mask != 0x80:
                    self.file_stream.write(bytes([self.rack]))
                    self.rack = 0
                    self.mask = 0x80
            finally:
                if self.owns_stream:
                    self.file_stream.close()
                elif not self.is_input:
                    self.file_stream.flush()

        def _tick(self):
            self.pacifier_counter += 1
            if self.pacifier and (self.pacifier_counter & CompressorBitio.PACIFIER_COUNT) == 0:
                sys.stdout.write(".")
                sys.stdout.flush()

        def _next_rack(self):
            read = self.file_stream.read(1)
            if not read:
                raise EOFError("bit stream ended")
            self.rack = read[0]
            self._tick()

        def output_bit(self, bit: int):
            if bit != 0:
                self.rack |= self.mask
            self.mask >>= 1
            if self.mask == 0:
                self.file_stream.write(bytes([self.rack]))
                self._tick()
                self.rack = 0
                self.mask = 0x80

        def output_bits(self, code: int, count: int):
            mask_code: int = 1 << (count - 1) if count > 0 else 0
            while mask_code != 0:
                if (mask_code & code) != 0:
                    self.rack |= self.mask
                self.mask >>= 1
                if self.mask == 0:
                    self.file_stream.write(bytes([self.rack]))
                    self._tick()
                    self.rack = 0
                    self.mask = 0x80
                mask_code >>= 1

        def input_bit(self) -> int:
            if self.mask == 0x80:
                self._next_rack()
            value = self.rack & self.mask
            self.mask >>= 1
            if self.mask == 0:
                self.mask = 0x80
            return 1 if value != 0 else 0

        def input_bits(self, bit_count: int) -> int:
            mask_code: int = 1 << (bit_count - 1) if bit_count > 0 else 0
            return_value: int = 0
            while mask_code != 0:
                if self.mask == 0x80:
                    self._next_rack()
                if (self.rack & self.mask) != 0:
                    return_value |= mask_code
                mask_code >>= 1
                self.mask >>= 1
                if self.mask == 0:
                    self.mask = 0x80
            return return_value
