"""Example: Running a YAML workflow.

Demonstrates the workflow orchestrator on the commuting communities
workflow shipped next to this script.
"""

import logging
from pathlib import Path

from geolink.workflows import run_workflow


def main():
    """Run workflow example."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("Workflow Orchestrator Example")
    print("=" * 60)

    workflow = Path(__file__).parent / "workflows" / "commuting_communities.yaml"
    results = run_workflow(workflow)

    print(f"\nSteps run: {list(results)}")
    for label, members in results["communities"].communities().items():
        print(f"  Community {label}: {', '.join(members)}")
    print("\nVertex metrics:")
    print(results["metrics"].to_string(index=False, float_format="%.3f"))


if __name__ == "__main__":
    main()
