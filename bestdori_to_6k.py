#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Bestdori (7k JSON) -> Costell III (6k JSON) converter
- 入力: Bestdori 譜面 .json（ファイルでもディレクトリでもOK）
- ディレクトリ指定時は再帰で .json を一括変換（出力サフィックス付きのファイルは除外）
- 出力: <stem><suffix>.json（既定 _6k）。out_dir 省略時は入力と同じ場所
  （out_dir 指定時は入力フォルダ以下のサブフォルダ構成をそのまま残す）
- 落としたノーツ数は必ず表示する（[WARN]）
- 難易度名はファイル名に含まれるキーワードから推定（easy/normal/hard/expert/special）

Usage:
  python bestdori_to_6k.py <input(.json or dir)> [out_dir] [--suffix _6k] [--quiet]
"""

import argparse
import os
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from bestdori_chart import dump_chart, load_chart
from lane_reduce import convert

ALLOWED_EXTS = {".json"}
DEFAULT_SUFFIX = "_6k"
DIFFICULTIES = ["easy", "normal", "hard", "expert", "special"]


def safe_filename(name: str) -> str:
    # ファイル名に使えない文字を置換
    return re.sub(r"[\\/:*?\"<>|]", "-", name.strip())


def detect_difficulty_from_filename(path: str) -> str:
    fn = os.path.basename(path).lower()
    for key in DIFFICULTIES:
        if key in fn:
            return key
    return ""


def collect_inputs(target: str, suffix: str = DEFAULT_SUFFIX) -> List[str]:
    paths = []
    if os.path.isfile(target):
        if os.path.splitext(target)[1].lower() in ALLOWED_EXTS:
            paths.append(os.path.abspath(target))
    else:
        for root, _, files in os.walk(target):
            for fn in sorted(files):
                stem, ext = os.path.splitext(fn)
                if ext.lower() in ALLOWED_EXTS and not stem.endswith(suffix):
                    paths.append(os.path.join(root, fn))
    return sorted(paths)


def out_path_for(
    src: str, out_dir: Optional[str], suffix: str = DEFAULT_SUFFIX, root: Optional[str] = None
) -> Path:
    p = Path(src)
    name = safe_filename(p.stem + suffix) + ".json"
    if not out_dir:
        return p.with_name(name)
    # 同名ファイル (s1/expert.json, s2/expert.json) が潰れないようにサブフォルダ構成を残す
    rel = p.relative_to(root).parent if root else Path()
    return Path(out_dir) / rel / name


def convert_one_file(path_in: str, path_out: Path) -> Tuple[int, int]:
    """
    Convert one chart file and write the 6k chart to path_out.
    Returns (kept note count, dropped note count).
    """
    chart = load_chart(path_in)
    converted, dropped = convert(chart)
    dump_chart(converted, path_out)
    return len(converted), dropped


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Convert Bestdori 7-lane charts to 6-lane (Costell III) charts")
    ap.add_argument("input", help="Bestdori chart .json, or a folder to walk recursively")
    ap.add_argument("out_dir", nargs="?", default=None, help="Output folder (default: next to each input)")
    ap.add_argument("--suffix", default=DEFAULT_SUFFIX, help=f"Output file name suffix (default: {DEFAULT_SUFFIX})")
    ap.add_argument("--quiet", action="store_true", help="Only print warnings, errors and the summary")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not os.path.exists(args.input):
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 2

    inputs = collect_inputs(args.input, args.suffix)
    if not inputs:
        print("[WARN] 対象ファイル(.json)が見つかりません。")
        return 0

    root = args.input if os.path.isdir(args.input) else None
    total = ok = ng = dropped_total = 0
    for src in inputs:
        total += 1
        dst = out_path_for(src, args.out_dir, args.suffix, root)
        try:
            kept, dropped = convert_one_file(src, dst)
        except (ValueError, OSError) as e:
            print(f"[NG] {src}: {e}")
            ng += 1
            continue
        ok += 1
        dropped_total += dropped
        diff = detect_difficulty_from_filename(src)
        label = f" [{diff}]" if diff else ""
        if not args.quiet:
            print(f"[OK] {src} -> {dst}{label} (notes={kept}, dropped={dropped})")
        if dropped:
            print(f"[WARN] {src}: {dropped} center-lane note(s) dropped (lanes 2 and 4 both held)")

    print(f"== done total={total}, ok={ok}, ng={ng}, dropped={dropped_total} ==")
    return 1 if ng else 0


if __name__ == "__main__":
    sys.exit(main())
