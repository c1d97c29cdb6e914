from __future__ import annotations

import argparse
import json
import logging

from api.settings import Settings
from pipeline.graph import build_detect_graph, build_match_graph
from utils.regions import RegionDescriptor

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    """
    Run a debug pass of one relay pipeline against the configured services.

    Files written by the run (crops, resized copies) are left on disk for
    inspection.
    """
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("image_path")
    parser.add_argument("--graph", choices=["detect", "match"], default="match")
    parser.add_argument("--area", help='JSON list of [x, y] pairs, e.g. "[[10,10],[50,10],[50,50]]"')
    parser.add_argument("--polygon", action="store_true")
    args = parser.parse_args()

    settings = Settings()
    initial_state = {"image_path": args.image_path, "temp_files": [args.image_path]}

    if args.graph == "match":
        area = json.loads(args.area) if args.area else None
        initial_state["region"] = RegionDescriptor.from_values(area, args.polygon)
        pipeline = build_match_graph(settings)
    else:
        pipeline = build_detect_graph(settings)

    print(pipeline.get_graph().draw_mermaid())

    # Stream: see each node's state delta live
    for step in pipeline.stream(initial_state):
        node = list(step.keys())[0]
        print("\n" + "=" * 40)
        print(f"NODE: {node}")
        print(f"DELTA: {step[node]}")


if __name__ == "__main__":
    main()
