import os
import sys
from datetime import datetime
from pathlib import Path

from huff import HuffFormatError, decode, encode


class ChurnProgram:
    COMPRESSED_EXTENSIONS = {".zip", ".ice", ".lzh", ".arc", ".gif", ".pak", ".arj"}

    def __init__(self, work_dir="."):
        self.total_files = 0
        self.total_passed = 0
        self.total_failed = 0
        self.log_file = None
        self.work_dir = work_dir
        self.compressed_name = os.path.join(work_dir, "TEST.CMP")
        self.expanded_name = os.path.join(work_dir, "TEST.OUT")
        self.log_name = os.path.join(work_dir, "CHURN.LOG")
        self.scratch_names = {os.path.abspath(name) for name in (self.compressed_name, self.expanded_name, self.log_name)}

    def main(self, args) -> int:
        if len(args) != 1:
            self.usage_exit()

        # Ensure path ends with separator
        root_dir = os.path.normpath(args[0]) + os.sep

        with open(self.log_name, "w", encoding="utf-8") as self.log_file:
            self.write_log_header()

            start_time = datetime.now()
            self.churn_files(root_dir)
            stop_time = datetime.now()

            self.write_log_summary(start_time, stop_time)
        return 0 if self.total_failed == 0 else 1

    def churn_files(self, path):
        try:
            entries = sorted(os.scandir(path), key=lambda e: e.name)
        except PermissionError as ex:
            print(f"Access denied to {path}: {ex}", file=sys.stderr)
            return

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                self.churn_files(entry.path)
            elif entry.is_file(follow_symlinks=False):
                if os.path.abspath(entry.path) in self.scratch_names:
                    continue
                if not self.file_is_already_compressed(entry.path):
                    print(f"Testing {entry.path}", file=sys.stderr)
                    if not self.compress(entry.path):
                        print("Comparison failed!", file=sys.stderr)

    def file_is_already_compressed(self, name):
        extension = Path(name).suffix.lower()
        return extension in self.COMPRESSED_EXTENSIONS

    def compress(self, file_name):
        self.log_file.write(f"{file_name:<40} ")
        self.total_files += 1
        try:
            encode(file_name, self.compressed_name)
            decode(self.compressed_name, self.expanded_name)
        except (OSError, ValueError, HuffFormatError) as ex:
            self.total_failed += 1
            self.log_file.write(f"Failed: {ex}\n")
            return False

        old_size = os.path.getsize(file_name)
        new_size = os.path.getsize(self.compressed_name)
        self.log_file.write(f" {old_size:8} {new_size:8} ")

        if old_size == 0:
            old_size = 1

        ratio = 100 - (new_size * 100 // old_size)
        self.log_file.write(f"{ratio:4}%  ")

        if not self.files_are_equal(file_name, self.expanded_name):
            self.log_file.write("Failed\n")
            self.total_failed += 1
            return False

        self.log_file.write("Passed\n")
        self.total_passed += 1
        return True

    def files_are_equal(self, file1, file2):
        """Compare two files byte by byte"""
        if not os.path.exists(file1) or not os.path.exists(file2):
            return False

        if os.path.getsize(file1) != os.path.getsize(file2):
            return False

        with open(file1, "rb") as f1, open(file2, "rb") as f2:
            while True:
                byte1 = f1.read(4096)
                byte2 = f2.read(4096)

                if byte1 != byte2:
                    return False

                if not byte1:  # End of both files
                    return True

    def write_log_header(self):
        self.log_file.write("                                          Original   Packed\n")
        self.log_file.write("            File Name                     Size      Size   Ratio  Result\n")
        self.log_file.write("-------------------------------------     --------  --------  ----  ------\n")

    def write_log_summary(self, start_time, stop_time):
        elapsed_time = (stop_time - start_time).total_seconds()
        self.log_file.write(f"\nTotal elapsed time: {elapsed_time:.2f} seconds\n")
        self.log_file.write(f"Total files:   {self.total_files}\n")
        self.log_file.write(f"Total passed:  {self.total_passed}\n")
        self.log_file.write(f"Total failed:  {self.total_failed}\n")

    def usage_exit(self):
        usage = """
CHURN 1.0. Usage: CHURN root-dir

CHURN tests the Huffman codec by compressing and expanding all files in a directory.
Results are written to CHURN.LOG.

Example:
  churn ./samples
"""
        print(usage)
        sys.exit(1)


def main(argv=None) -> int:
    return ChurnProgram().main(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
