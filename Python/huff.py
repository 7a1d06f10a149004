import heapq
import io
import os
import struct
from typing import BinaryIO, List

from bitio import CompressorBitio

END_OF_STREAM = 256
SYMBOL_COUNT = 257
NODE_TABLE_COUNT = (SYMBOL_COUNT * 2) - 1
HEADER_FORMAT = ">257I"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
MAX_COUNT = 0xFFFFFFFF
READ_CHUNK = 4096
COMPRESSION_NAME = "static order 0 model with Huffman coding"
USAGE = "infile outfile\n"


class HuffFormatError(Exception):
    """Raised when input is not validly encoded data."""


class Node:
    def __init__(self):
        self.count = 0
        self.child_0 = 0
        self.child_1 = 0


class Code:
    def __init__(self):
        self.code = 0
        self.code_bits = 0


def new_nodes() -> List[Node]:
    return [Node() for _ in range(NODE_TABLE_COUNT)]


def new_codes() -> List[Code]:
    return [Code() for _ in range(SYMBOL_COUNT)]


def compress_file(input_file: BinaryIO, output_bit_file: CompressorBitio.BitFile):
    """Write the count header and the Huffman coded body of input_file.

    The input is read twice: once to count and once to encode. Streams that
    cannot seek are buffered in memory first.
    """
    if not input_file.seekable():
        input_file = io.BytesIO(input_file.read())
    input_marker = input_file.tell()

    nodes = new_nodes()
    codes = new_codes()

    counts = count_bytes(input_file)
    set_counts(counts, nodes)
    output_counts(output_bit_file.file_stream, counts)
    root_node = build_tree(nodes)
    convert_tree_to_code(nodes, codes, root_node)

    input_file.seek(input_marker)
    compress_data(input_file, output_bit_file, codes)


def expand_file(input_bit_file: CompressorBitio.BitFile, output_file: BinaryIO):
    nodes = new_nodes()

    counts = input_counts(input_bit_file.file_stream)
    set_counts(counts, nodes)
    root_node = build_tree(nodes)

    expand_data(input_bit_file, output_file, nodes, root_node)


def encode(input_path: str, output_path: str, pacifier: bool = False):
    with open(input_path, "rb") as input_file:
        output_bit_file = CompressorBitio.BitFile.open_output_bit_file(output_path, pacifier)
        try:
            compress_file(input_file, output_bit_file)
        finally:
            output_bit_file.close_bit_file()


def decode(input_path: str, output_path: str, pacifier: bool = False):
    """Expand input_path into output_path.

    On failure the partially written output file is removed.
    """
    input_bit_file = CompressorBitio.BitFile.open_input_bit_file(input_path, pacifier)
    try:
        with open(output_path, "wb") as output_file:
            try:
                expand_file(input_bit_file, output_file)
            except Exception:
                output_file.close()
                os.remove(output_path)
                raise
    finally:
        input_bit_file.close_bit_file()


def compress_bytes(data: bytes) -> bytes:
    output = io.BytesIO()
    output_bit_file = CompressorBitio.BitFile.wrap_stream(output, False)
    compress_file(io.BytesIO(data), output_bit_file)
    output_bit_file.close_bit_file()
    return output.getvalue()


def expand_bytes(data: bytes) -> bytes:
    output = io.BytesIO()
    expand_file(CompressorBitio.BitFile.wrap_stream(io.BytesIO(data), True), output)
    return output.getvalue()


def count_bytes(input_file: BinaryIO) -> List[int]:
    counts = [0] * SYMBOL_COUNT
    while True:
        chunk = input_file.read(READ_CHUNK)
        if not chunk:
            break # EOF
        for c in chunk:
            counts[c] += 1

    counts[END_OF_STREAM] = 1
    return counts


def set_counts(counts: List[int], nodes: List[Node]):
    for i in range(SYMBOL_COUNT):
        nodes[i].count = counts[i]


def output_counts(output_file: BinaryIO, counts: List[int]):
    for i, count in enumerate(counts):
        if count > MAX_COUNT:
            raise ValueError(f"count for symbol {i} does not fit the header: {count}")
    output_file.write(struct.pack(HEADER_FORMAT, *counts))


def input_counts(input_file: BinaryIO) -> List[int]:
    header = input_file.read(HEADER_SIZE)
    if len(header) != HEADER_SIZE:
        raise HuffFormatError(f"truncated header: expected {HEADER_SIZE} bytes, got {len(header)}")

    counts = list(struct.unpack(HEADER_FORMAT, header))
    if counts[END_OF_STREAM] != 1:
        raise HuffFormatError(f"bad end-of-stream count in header: {counts[END_OF_STREAM]}")
    return counts


def build_tree(nodes: List[Node]) -> int:
    """Merge the two lightest nodes until one is left and return its index.

    Leaves live at their symbol index, internal nodes are allocated from
    SYMBOL_COUNT upward. Heap entries are (count, index), so equal counts
    resolve to the lower index and the tree depends on the counts alone.
    """
    heap = [(nodes[i].count, i) for i in range(SYMBOL_COUNT) if nodes[i].count != 0]
    heapq.heapify(heap)
    next_free = SYMBOL_COUNT

    while len(heap) > 1:
        count_1, min_1 = heapq.heappop(heap)
        count_2, min_2 = heapq.heappop(heap)

        nodes[next_free].count = count_1 + count_2
        nodes[next_free].child_0 = min_1
        nodes[next_free].child_1 = min_2
        heapq.heappush(heap, (nodes[next_free].count, next_free))

        next_free += 1

    if not heap:
        raise HuffFormatError("frequency table is empty")
    return heap[0][1]


def convert_tree_to_code(nodes: List[Node], codes: List[Code], root_node: int):
    if root_node <= END_OF_STREAM:
        # A lone leaf still needs one bit per occurrence.
        codes[root_node].code = 0
        codes[root_node].code_bits = 1
        return

    stack = [(root_node, 0, 0)]
    while stack:
        node, code_so_far, bits = stack.pop()
        if node <= END_OF_STREAM:
            codes[node].code = code_so_far
            codes[node].code_bits = bits
            continue

        code_so_far <<= 1
        bits = bits + 1
        stack.append((nodes[node].child_1, code_so_far | 1, bits))
        stack.append((nodes[node].child_0, code_so_far, bits))


def compress_data(input_file: BinaryIO, output_bit_file: CompressorBitio.BitFile, codes: List[Code]):
    while True:
        chunk = input_file.read(READ_CHUNK)
        if not chunk:
            break # EOF
        for c in chunk:
            output_bit_file.output_bits(codes[c].code, codes[c].code_bits)

    output_bit_file.output_bits(codes[END_OF_STREAM].code, codes[END_OF_STREAM].code_bits)


def expand_data(input_bit_file: CompressorBitio.BitFile, output_file: BinaryIO, nodes: List[Node], root_node: int):
    pending = bytearray()
    try:
        while True:
            node = root_node
            if node <= END_OF_STREAM:
                input_bit_file.input_bit()

            # Traverse the tree bit by bit
            while node > END_OF_STREAM:
                if input_bit_file.input_bit():
                    node = nodes[node].child_1 # 1 bit (right)
                else:
                    node = nodes[node].child_0 # 0 bit (left)

            # Leaf node found
            if node == END_OF_STREAM:
                break # Done

            pending.append(node)
            if len(pending) >= READ_CHUNK:
                output_file.write(pending)
                pending.clear()
    except EOFError:
        raise HuffFormatError("encoded data ended before the end-of-stream code") from None

    output_file.write(pending)
