from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pathfinder._logging_utils import configure_logging
from pathfinder.ensemble.synthetic import make_synthetic_bundle
from pathfinder.io.ensemble_store import save_ensemble_bundle

logger = logging.getLogger("pathfinder.cli.make_ensemble")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic seasonal ensemble bundle as HDF5")
    parser.add_argument("--output", required=True, help="Output HDF5 path")
    parser.add_argument("--n-positions", type=int, default=12, help="Number of candidate positions")
    parser.add_argument("--n-realizations", type=int, default=50, help="Realizations per ensemble")
    parser.add_argument("--noise", type=float, default=0.5, help="Per-position noise standard deviation")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--resample-knots", type=int, default=None, help="Resample realizations onto this many even intervals")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    args = parser.parse_args()

    configure_logging(args.verbose)

    bundle = make_synthetic_bundle(
        n_positions=args.n_positions,
        n_realizations=args.n_realizations,
        noise=args.noise,
        seed=args.seed,
        resample_knots=args.resample_knots,
    )
    out = save_ensemble_bundle(Path(args.output).resolve(), bundle)
    logger.info("wrote %d ensembles to %s", len(bundle.ensembles), out)

    print(
        json.dumps(
            {
                "status": "ok",
                "created_at": datetime.now(timezone.utc).isoformat(),
                "output": str(out),
                "grid_size": int(bundle.grid.size),
                "ensembles": sorted(bundle.ensembles),
                "baselines": sorted(bundle.baselines),
                "n_realizations": int(args.n_realizations),
                "resample_knots": args.resample_knots,
            },
            ensure_ascii=False,
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
