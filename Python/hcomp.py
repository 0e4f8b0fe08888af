import os
import sys
import time
import tracemalloc
from typing import List, Optional

import psutil

import container
import huff

VERSION = "1.3"
USAGE = "[--version] [--help] [-c|-d source target [-m] [-t]]"
HELP = """commands:
    -c    compress source into target
    -d    decompress source into target
options:
    -m    print the Huffman model
    -t    print time and memory used by each stage
"""

_printed_header = False


def track_performance(name, func, *args, **kwargs):
    global _printed_header

    process = psutil.Process(os.getpid())
    start_time = time.time()
    start_cpu = process.cpu_times().user
    tracemalloc.start()
    start_mem = tracemalloc.get_traced_memory()[0]

    try:
        result = func(*args, **kwargs)
    finally:
        end_mem = tracemalloc.get_traced_memory()[1]
        tracemalloc.stop()

    end_cpu = process.cpu_times().user
    end_time = time.time()

    wall_time_ms = (end_time - start_time) * 1000
    cpu_time_ms = (end_cpu - start_cpu) * 1000
    mem_used_kb = (end_mem - start_mem) / 1024

    if not _printed_header:
        print(f"{'Function':<20} {'Wall Time (ms)':>15} {'CPU Time (ms)':>15} {'Memory Used (KB)':>20}")
        _printed_header = True

    print(f"{name:<20} {wall_time_ms:15.2f} {cpu_time_ms:15.2f} {mem_used_kb:20.2f}")

    return result


def get_unit(b: int) -> str:
    if b >= 1 << 30:
        return "G"
    if b >= 1 << 20:
        return "M"
    if b >= 1 << 10:
        return "K"
    return ""


def format_size(b: int) -> str:
    unit = get_unit(b)
    scale = {"G": 1 << 30, "M": 1 << 20, "K": 1 << 10, "": 1}[unit]
    return f"~{b / scale:.3f}{unit}B"


def print_ratios(input_name: str, input_size: int, output_name: str, output_size: int, compressing: bool):
    print(f"read {input_name:<15} {format_size(input_size)}")
    print(f"wrote {output_name:<15}{format_size(output_size)}")

    original = input_size if compressing else output_size
    packed = output_size if compressing else input_size
    ratio = 100 - int((packed * 100) / max(original, 1))
    print(f"Compression ratio:       {ratio}%")


def show_invalid_args(prog: str):
    print(f"{prog}: error: invalid arguments", file=sys.stderr)
    print(f"see '{prog} --help' for usage", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    arguments = sys.argv[1:] if argv is None else argv
    prog = "hcomp"

    if not arguments:
        print(f"{prog}: error: no arguments", file=sys.stderr)
        print(f"see '{prog} --help' for usage", file=sys.stderr)
        return 1

    if len(arguments) == 1:
        if arguments[0] == "--help":
            print(f"usage: {prog} {USAGE}")
            print(HELP, end="")
            return 0
        if arguments[0] == "--version":
            print(f"{prog} version {VERSION}")
            return 0
        show_invalid_args(prog)
        return 1

    command = arguments[0]
    if command not in ("-c", "-d") or len(arguments) < 3:
        show_invalid_args(prog)
        return 1

    source, target = arguments[1], arguments[2]
    options = arguments[3:]
    if any(option not in ("-m", "-t") for option in options):
        show_invalid_args(prog)
        return 1
    dump_model = "-m" in options
    timing = "-t" in options

    if command == "-c":
        print(f"Compressing {source} to {target}")
        print(f"Using {container.COMPRESSION_NAME}\n")
        func, label = container.compress_file, "CompressFile"
    else:
        print(f"Decompressing {source} to {target}")
        func, label = container.expand_file, "ExpandFile"

    try:
        if timing:
            bytes_in, bytes_out = track_performance(label, func, source, target, dump_model, True)
        else:
            bytes_in, bytes_out = func(source, target, dump_model, True)
    except huff.SourceNotFound:
        print(f"{prog}: error: {source} not found", file=sys.stderr)
        return 1
    except huff.EmptyInput:
        print(f"{prog}: error: {source} is empty", file=sys.stderr)
        return 1
    except container.InvalidContainer as e:
        print(f"{prog}: error: {source} is not a valid hcomp file ({e})", file=sys.stderr)
        return 1
    except (huff.HuffError, OSError) as e:
        print(f"{prog}: error: {e}", file=sys.stderr)
        return 1

    print()
    print_ratios(source, bytes_in, target, bytes_out, command == "-c")
    return 0


if __name__ == '__main__':
    sys.exit(main())
