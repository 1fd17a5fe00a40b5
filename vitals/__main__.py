import argparse
import sys
from typing import List, Optional

import uvicorn

from vitals.config import get_settings
from vitals.services.vitals_collector import collect_vitals
from vitals.services.vitals_report import render_text


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Host vitals server")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print one snapshot as a text report and exit instead of serving",
    )
    args = parser.parse_args(argv)

    if args.once:
        sys.stdout.write(render_text(collect_vitals()))
        return

    settings = get_settings()
    uvicorn.run(
        "vitals.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
