"""Command-line options for the bundle generator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

log = logging.getLogger("BundleGenerator")


@dataclass
class Options:
    """Settings taken from the command line."""

    input_file: str = ""
    output_folder: str = "output"
    generate_sample: bool = False
    key: str = "k"
    bundle_file: str = ""

    def validate_input(self) -> list[str]:
        """Return the input file, or every YAML file under the working directory."""
        if self.input_file:
            return [self.input_file]
        try:
            return get_yaml_files(os.getcwd())
        except OSError as exc:
            log.error("Error getting yaml files from stdin: %s", exc)
            raise


def _walk(path: str) -> Iterator[str]:
    """Yield ``path`` and everything below it in lexical order, without following links."""
    yield path
    if os.path.isdir(path) and not os.path.islink(path):
        for name in sorted(os.listdir(path)):
            yield from _walk(os.path.join(path, name))


def get_yaml_files(root: str | os.PathLike[str]) -> list[str]:
    """Return the ``.yaml`` paths under ``root`` outside any ``output/`` directory."""
    return [
        path
        for path in _walk(os.fspath(root))
        if path.endswith(".yaml") and "output/" not in path
    ]


def parse_options(argv: Sequence[str] | None = None) -> Options:
    """Parse command-line arguments into Options."""
    parser = argparse.ArgumentParser(prog=os.path.basename(sys.argv[0]) if sys.argv else None)
    parser.add_argument(
        "-generate-sample",
        "--generate-sample",
        dest="generate_sample",
        action="store_true",
        help="Whether you want to generate a sample bundle for yourself",
    )
    parser.add_argument(
        "-input", "--input", dest="input_file", default="",
        help="The path where the input bundle generation file lives",
    )
    parser.add_argument(
        "-output", "--output", dest="output_folder", default="output",
        help="The path where to write the output bundle files",
    )
    parser.add_argument("-key", "--key", dest="key", default="k", help="The key to sign with")
    parser.add_argument(
        "-bundle", "--bundle", dest="bundle_file", default="",
        help="The path where the bundle file lives",
    )
    args = parser.parse_args(sys.argv[1:] if argv is None else list(argv))
    return Options(
        input_file=args.input_file,
        output_folder=args.output_folder,
        generate_sample=args.generate_sample,
        key=args.key,
        bundle_file=args.bundle_file,
    )