"""Boot the kernel and run it until terminate (Ctrl+C) or a fatal task error.

Usage:
  python scripts/run_kernel.py                      # modules from configs/
  python scripts/run_kernel.py --module modules.inventory --module modules.tui
  python scripts/run_kernel.py --config-dir /etc/depot --api-port 8000

Module sources given on the command line replace ``modules.sources`` from
the settings files; their order is the load order.
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path as _P

_ROOT = _P(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:  # ensure project root for 'kernel' imports
    sys.path.insert(0, str(_ROOT))
if str(_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(_ROOT / "src"))

from kernel.bootstrap import Kernel  # noqa: E402
from kernel.config import clear_settings_cache, get_settings  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="depot orchestration kernel")
    p.add_argument(
        "--config-dir",
        help="directory holding base.yaml / overrides.local.yaml",
    )
    p.add_argument(
        "--module",
        action="append",
        dest="modules",
        metavar="DOTTED.PATH",
        help="module source to load (repeatable, in load order)",
    )
    p.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="serve the HTTP control surface on this port",
    )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.config_dir:
        os.environ["DEPOT_CONFIG_DIR"] = args.config_dir
        clear_settings_cache()
    kernel = Kernel(sources=args.modules, settings=get_settings())
    context = kernel.boot()
    if args.api_port is not None:
        from depot.api.app import serve_in_background  # local import

        serve_in_background(context, kernel.scheduler, port=args.api_port)
    return kernel.run()


if __name__ == "__main__":
    sys.exit(main())
