import argparse
import logging
import sys

from dashsim.simulation import DashSimulation
from dashsim.trace import BandwidthTrace, TraceLoadError


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Simulate DASH players over a bandwidth trace.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("trace", help="Trace log, e.g. traces/bus.log, traces/ferry.log, traces/metro.log, traces/tram.log")
    p.add_argument("-n", "--players", type=int, default=1, help="Players sharing the bottleneck link.")
    p.add_argument("--seed", type=int, default=None, help="Seed for the target-buffer jitter.")
    p.add_argument("--ticks", action="store_true", help="Print per-tick 'time<TAB>played kbps' lines.")
    p.add_argument("--bandwidth-log", type=int, default=None, metavar="STEP_MS",
                   help="Print the trace bandwidth every STEP_MS and exit.")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    if args.players < 1:
        logging.error("--players must be >= 1")
        return 2

    try:
        trace = BandwidthTrace.from_file(args.trace)
    except TraceLoadError as exc:
        logging.error("Loading trace failed: %s", exc)
        return 1

    if args.bandwidth_log is not None:
        for t, bw in trace.bandwidth_log(args.bandwidth_log):
            print(f"{t}\t{bw}")
        return 0

    sim = DashSimulation(trace, num_players=args.players, seed=args.seed)
    for i, (player, report) in enumerate(zip(sim.players, sim.run())):
        if args.ticks:
            print(f"=====PLAYER {i + 1}=====")
            for t, kbps in player.playback_log():
                print(f"{t}\t{kbps}")
            print()
        sim.print_report(report, i)
    return 0


if __name__ == "__main__":
    sys.exit(main())
