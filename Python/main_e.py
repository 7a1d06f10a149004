import sys

from huff import COMPRESSION_NAME, USAGE, HuffFormatError, decode
from main_c import file_size, short_program_name, track_performance


def main(argv=None) -> int:
    arguments = sys.argv if argv is None else argv
    if len(arguments) < 3:
        print(f"\nUsage:  {short_program_name(arguments[0])} {USAGE}")
        return 0

    print(f"\nDecompressing {arguments[1]} to {arguments[2]}")
    print(f"Using {COMPRESSION_NAME}\n")
    try:
        track_performance("Decode", decode, arguments[1], arguments[2], pacifier=True)
    except FileNotFoundError as e:
        if e.filename == arguments[1]:
            print(f"Error: Input file '{arguments[1]}' not found.")
        else:
            print(f"Error: cannot create output file '{e.filename}'.")
        return 1
    except HuffFormatError as e:
        print(f"Error: '{arguments[1]}' is not a valid compressed file: {e}")
        return 1
    except OSError as e:
        print(f"An error occurred: {e}")
        return 1

    print(f"\nInput bytes (compressed):     {file_size(arguments[1])}")
    print(f"Output bytes (decompressed):  {file_size(arguments[2])}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
