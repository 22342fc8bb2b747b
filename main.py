"""
Entry point for the Ollama-based JSON translation tool.

Usage:
    python main.py --target Chinese
    python main.py --source English --target Japanese --exclude "id,url"
    python main.py --endpoint http://gpu-box:11434 --model llama3 --data-dir in
    python main.py --list-models
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm

import config
from json_translate.client import list_models
from json_translate.errors import ModelListError
from json_translate.session import TranslationSession
from json_translate.tree import TranslationReport, count_eligible, translate_document


# ── File I/O helpers ───────────────────────────────────────────────────────────

def read_document(path: Path) -> Any:
    """Load a JSON document; raises ValueError with the file name on bad JSON."""
    with path.open("r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path.name}: {exc}") from exc


def write_document(data: Any, path: Path) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


# ── Translation run ────────────────────────────────────────────────────────────

async def translate_file(
    src_path: Path,
    dst_path: Path,
    session: TranslationSession,
    args: argparse.Namespace,
) -> TranslationReport:
    """Translate one file into `dst_path` and return the pass report."""
    data = read_document(src_path)
    report = TranslationReport()

    total = count_eligible(data, args.exclude)
    print(f"  Strings to translate: {total}")

    with tqdm(total=total, desc="  Translating strings", unit="str") as bar:
        translated = await translate_document(
            data,
            model=args.model,
            source_language=args.source,
            target_language=args.target,
            keys_to_exclude=args.exclude,
            session=session,
            report=report,
            progress=lambda _outcome: bar.update(1),
        )

    write_document(translated, dst_path)
    return report


async def translate_all(json_files: list[Path], result_dir: Path, args: argparse.Namespace) -> int:
    """Translate every file sequentially over one session; returns failed-file count."""
    failed = 0
    async with TranslationSession(
        args.endpoint, timeout=args.timeout, max_attempts=args.max_attempts,
    ) as session:
        for json_file in json_files:
            print(f"Processing: {json_file.name}")
            out_path = result_dir / json_file.name
            try:
                report = await translate_file(json_file, out_path, session, args)
            except (OSError, ValueError) as exc:
                print(f"  [ERROR] {exc}")
                failed += 1
                continue

            print(
                f"  Translated: {report.translated}  Kept original: {report.fallback}"
                f"  Skipped: {report.skipped}  Excluded: {report.excluded}"
            )
            if not report.complete:
                print(f"  [WARN] Some strings were left untranslated: {dict(report.fallback_reasons)}")
            print(f"  Saved → {out_path}\n")
    return failed


async def print_models(endpoint: str) -> int:
    async with TranslationSession(endpoint) as session:
        try:
            models = await list_models(session)
        except ModelListError as exc:
            print(f"[ERROR] {exc}")
            return 1
    if not models:
        print(f"No models available at {endpoint}.")
    for name in models:
        print(name)
    return 0


# ── CLI ────────────────────────────────────────────────────────────────────────

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Translate the string values of JSON files with an Ollama model."
    )
    parser.add_argument(
        "--source", "-s",
        default=config.SOURCE_LANGUAGE,
        help=f'Source language label (default: {config.SOURCE_LANGUAGE})',
    )
    parser.add_argument(
        "--target", "-t",
        default=config.TARGET_LANGUAGE,
        help=f'Target language label, e.g. "Chinese" (default: {config.TARGET_LANGUAGE})',
    )
    parser.add_argument(
        "--model", "-m",
        default=config.MODEL,
        help=f"Ollama model to use (default: {config.MODEL})",
    )
    parser.add_argument(
        "--endpoint", "-e",
        default=config.OLLAMA_API_URL,
        help=f"Ollama API base URL (default: {config.OLLAMA_API_URL})",
    )
    parser.add_argument(
        "--exclude", "-x",
        default=config.KEYS_TO_EXCLUDE,
        help='Comma-separated object keys to leave untranslated, e.g. "id,url"',
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.REQUEST_TIMEOUT,
        help=f"Per-string request timeout in seconds (default: {config.REQUEST_TIMEOUT:g})",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=config.MAX_ATTEMPTS,
        dest="max_attempts",
        help=f"Attempts per string on connection errors (default: {config.MAX_ATTEMPTS})",
    )
    parser.add_argument(
        "--data-dir",
        default=config.DATA_DIR,
        help=f"Source data directory (default: {config.DATA_DIR})",
    )
    parser.add_argument(
        "--result-dir",
        default=config.RESULT_DIR,
        help=f"Output directory (default: {config.RESULT_DIR})",
    )
    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List the models available at the endpoint and exit",
    )
    return parser.parse_args(argv)


# ── Main ───────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_models:
        sys.exit(asyncio.run(print_models(args.endpoint)))

    data_dir   = Path(args.data_dir)
    result_dir = Path(args.result_dir)

    if not data_dir.exists():
        print(f"[ERROR] Data directory not found: {data_dir}")
        sys.exit(1)

    result_dir.mkdir(parents=True, exist_ok=True)

    json_files = sorted(data_dir.glob("*.json"))
    if not json_files:
        print(f"[WARN] No JSON files found in '{data_dir}'.")
        sys.exit(0)

    print(f"Source language : {args.source}")
    print(f"Target language : {args.target}")
    print(f"Model           : {args.model}")
    print(f"Ollama API      : {args.endpoint}")
    print(f"Excluded keys   : {args.exclude or '(none)'}")
    print(f"Files found     : {len(json_files)}\n")

    failed = asyncio.run(translate_all(json_files, result_dir, args))

    if failed:
        print(f"Done with errors: {failed} file(s) could not be translated.")
        sys.exit(1)
    print("Done.")


if __name__ == "__main__":
    main()
