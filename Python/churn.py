import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import container
import huff


class ChurnProgram:
    """Round-trips every file under a directory through the codec and logs the results."""

    COMPRESSED_EXTENSIONS = {".zip", ".gz", ".bz2", ".xz", ".7z", ".lzh", ".arc", ".gif", ".png", ".jpg", ".hc"}

    def __init__(self):
        self.total_files = 0
        self.total_passed = 0
        self.total_failed = 0
        self.total_skipped = 0
        self.log_file = None
        self.work_dir = None

    def main(self, args) -> int:
        if len(args) not in (1, 2):
            self.usage_exit()

        root_dir = args[0]
        log_name = args[1] if len(args) == 2 else "CHURN.LOG"

        with open(log_name, "w", encoding="utf-8") as self.log_file, \
                tempfile.TemporaryDirectory(prefix="churn-") as self.work_dir:
            self.write_log_header()

            start_time = datetime.now()
            self.churn_files(root_dir)
            stop_time = datetime.now()

            self.write_log_summary(start_time, stop_time)

        return 1 if self.total_failed else 0

    def churn_files(self, path):
        for entry in sorted(os.scandir(path), key=lambda e: e.name):
            if entry.is_dir(follow_symlinks=False):
                self.churn_files(entry.path)
            elif entry.is_file(follow_symlinks=False):
                if not self.file_is_already_compressed(entry.path):
                    print(f"Testing {entry.path}", file=sys.stderr)
                    if not self.compress(entry.path):
                        print("Comparison failed!", file=sys.stderr)

    def file_is_already_compressed(self, name):
        return Path(name).suffix.lower() in self.COMPRESSED_EXTENSIONS

    def compress(self, file_name):
        packed = os.path.join(self.work_dir, "TEST.CMP")
        expanded = os.path.join(self.work_dir, "TEST.OUT")
        self.log_file.write(f"{file_name:<40} ")

        try:
            old_size, new_size = container.compress_file(file_name, packed)
            container.expand_file(packed, expanded)
        except huff.EmptyInput:
            self.total_skipped += 1
            self.log_file.write(f" {0:8} {0:8}    -   Skipped\n")
            return True
        except (huff.HuffError, OSError) as ex:
            self.total_files += 1
            self.total_failed += 1
            self.log_file.write(f"Failed: {ex}\n")
            return False

        self.total_files += 1
        self.log_file.write(f" {old_size:8} {new_size:8} ")

        ratio = 100 - (new_size * 100 // old_size)
        self.log_file.write(f"{ratio:4}%  ")

        if not self.files_are_equal(file_name, expanded):
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

                if not byte1:
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
        self.log_file.write(f"Total skipped: {self.total_skipped}\n")

    def usage_exit(self):
        usage = """
CHURN. Usage: hcomp-churn root-dir [log-file]

Compresses and expands every file under root-dir with hcomp and checks
that each one comes back unchanged. Results go to log-file (CHURN.LOG).
"""
        print(usage)
        sys.exit(1)


def main(argv=None) -> int:
    return ChurnProgram().main(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":
    sys.exit(main())
