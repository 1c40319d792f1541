import typer
from aegis_intel.core.logger_config import setup_logging
from aegis_intel.core.config_loader import CONFIG, SETTINGS
from aegis_intel.core.aegis_score import score_app
from aegis_intel.core.remediation_planner import remediation_app
from aegis_intel.core.crosswire import crosswire_app
from aegis_intel.core.case_priority import priority_app
from aegis_intel.core.profile_completeness import completeness_app
from aegis_intel.core.data_freshness import freshness_app
from aegis_intel.core.anomaly_detection import anomaly_app
from aegis_intel.core.benchmarking import benchmark_app
from aegis_intel.core.pattern_heatmap import heatmap_app


# --- Startup Banner ---
BANNER = r"""
    _              _       ___       _       _
   / \   ___  __ _(_)___  |_ _|_ __ | |_ ___| |
  / _ \ / _ \/ _` | / __|  | || '_ \| __/ _ \ |
 / ___ \  __/ (_| | \__ \  | || | | | ||  __/ |
/_/   \_\___|\__, |_|___/ |___|_| |_|\__\___|_|
             |___/
"""


def get_cli_app() -> typer.Typer:
    """
    Creates the Typer application with every command group registered.
    Used both at runtime and by the CLI tests.
    """
    app = typer.Typer(
        name="Aegis Intel",
        help="Exposure scoring, remediation planning and cross-case correlation for subject dossiers.",
        add_completion=False,
        rich_markup_mode="markdown",
    )

    app.add_typer(score_app, name="score", help="Calculate the Aegis exposure score.")
    app.add_typer(remediation_app, name="remediation", help="Plan and simulate remediation.")
    app.add_typer(crosswire_app, name="crosswire", help="Detect overlaps between subjects.")
    app.add_typer(priority_app, name="priority", help="Triage a case.")
    app.add_typer(completeness_app, name="completeness", help="Measure profile completeness.")
    app.add_typer(freshness_app, name="freshness", help="Report data freshness.")
    app.add_typer(anomaly_app, name="anomalies", help="Diff two profile snapshots.")
    app.add_typer(benchmark_app, name="benchmark", help="Benchmark a score against history.")
    app.add_typer(heatmap_app, name="heatmap", help="Map routines onto a weekly heatmap.")

    @app.command(name="version", help="Show Aegis Intel version.")
    def version():
        """Show Aegis Intel version."""
        typer.echo(f"{CONFIG.app_name} v{CONFIG.version}")

    return app


app = get_cli_app()


def main():
    """
    Main entry point for the Aegis Intel CLI application.
    Configures logging from the loaded settings, then runs the app.
    """
    typer.echo(BANNER, err=True)
    setup_logging(level=CONFIG.log_level, config_path=SETTINGS.log_config_path)
    app()


if __name__ == "__main__":
    main()
