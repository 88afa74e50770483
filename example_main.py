import logging

import analytics_engine as engine
from report_builder import build_summary_block
from synthetic_data import generate_synthetic_truck


def main():
    """Run the food truck analytics over a synthetic business and print the results."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    snapshot = generate_synthetic_truck({"seed": 7})

    # Run analysis
    results = engine.run_full_analysis(snapshot, timeframe="month")
    if "error" in results:
        print(build_summary_block(results))
        return

    # Print summary
    print(build_summary_block(results))

    print("\nShift costs (first 10):")
    print(
        results["labor_summary"].to_frame()[
            ["date", "employee_id", "hours", "regular_hours", "overtime_hours", "wage"]
        ]
        .head(10)
        .to_string(index=False)
    )

    print("\nWaste by item:")
    print(
        results["waste_analytics"].to_frame()[
            ["item_name", "theoretical_usage", "disposed_quantity", "waste_rate", "waste_value"]
        ]
        .sort_values("waste_value", ascending=False)
        .to_string(index=False)
    )


if __name__ == "__main__":
    main()
