"""Command-line interface for the housecast prediction pipeline."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from housecast.config.settings import AppConfig

app = typer.Typer(
    name="housecast",
    help="Housing price prediction from square footage and bedroom count.",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]


def _load(config: Path | None) -> "AppConfig":
    """Load configuration and configure logging from it."""
    from housecast.config.loader import load_config
    from housecast.utils.logging import configure_logging

    app_config = load_config(config)
    configure_logging(
        level=app_config.logging.level,
        json_output=app_config.logging.json_output,
    )
    return app_config


@app.command()
def train(config: ConfigOption = None) -> None:
    """Train a new model on the training corpus and persist it."""
    from housecast.errors import HousecastError
    from housecast.modeling.models import describe_model
    from housecast.service import build_service

    app_config = _load(config)
    console.print(
        f"[blue]Training on {app_config.data.training_data} "
        f"({app_config.training.epochs} epochs)[/blue]"
    )

    with build_service(app_config) as service:
        try:
            result = service.train_new_model()
        except HousecastError as e:
            console.print(f"[red]Training failed: {e}[/red]")
            raise typer.Exit(code=1) from e

        status = service.get_status()

    summary = describe_model(result.model)
    table = Table(title="Training Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Samples", str(result.n_samples))
    table.add_row("Epochs run", str(len(result.history.get("loss", []))))
    table.add_row("Final loss", f"{result.final_loss:.6f}")
    if result.history.get("val_loss"):
        table.add_row("Final validation loss", f"{result.history['val_loss'][-1]:.6f}")
    table.add_row("Parameters", str(summary["n_params"]))
    table.add_row("Training time", f"{result.training_time_s:.1f}s")
    table.add_row("Model version", status.model_version or "-")
    console.print(table)


@app.command()
def predict(
    square_footage: Annotated[
        float,
        typer.Option("--square-footage", "-s", help="Living area in square feet."),
    ],
    bedrooms: Annotated[
        int,
        typer.Option("--bedrooms", "-b", help="Number of bedrooms."),
    ],
    config: ConfigOption = None,
) -> None:
    """Predict the sale price for one property."""
    from housecast.errors import HousecastError, ValidationError
    from housecast.service import build_service

    app_config = _load(config)

    with build_service(app_config) as service:
        try:
            result = service.predict(
                {"square_footage": square_footage, "bedrooms": bedrooms}
            )
        except ValidationError as e:
            console.print("[red]Invalid input:[/red]")
            for violation in e.violations:
                console.print(f"  [red]- {violation}[/red]")
            raise typer.Exit(code=1) from e
        except HousecastError as e:
            console.print(f"[red]Prediction failed: {e}[/red]")
            raise typer.Exit(code=1) from e

    console.print(f"[green]Predicted price: ${result.price:,.2f}[/green]")
    console.print(f"Confidence: {result.confidence:.1%}")
    console.print(f"[dim]{result.timestamp}[/dim]")


@app.command()
def status(config: ConfigOption = None) -> None:
    """Show the service state and the stored model version without loading it."""
    from housecast.errors import StoreError
    from housecast.service import build_service

    app_config = _load(config)

    with build_service(app_config) as service:
        snapshot = service.get_status()
        try:
            stored_version = service.store.current_version()
        except StoreError as e:
            console.print(f"[red]Model store unreadable: {e}[/red]")
            raise typer.Exit(code=1) from e

    table = Table(title="Model Status")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in snapshot.to_dict().items():
        table.add_row(key, "-" if value is None else str(value))
    table.add_row("stored_version", stored_version or "-")
    console.print(table)


@app.command()
def history(
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of predictions to show."),
    ] = 10,
    config: ConfigOption = None,
) -> None:
    """Show the most recent logged predictions."""
    from housecast.ingestion.prediction_log import read_prediction_log

    app_config = _load(config)
    df = read_prediction_log(app_config.data.prediction_log, limit=limit)

    if df.empty:
        console.print("[yellow]No predictions logged yet[/yellow]")
        return

    table = Table(title=f"Last {len(df)} Predictions")
    table.add_column("Timestamp", style="dim")
    table.add_column("Sq ft", justify="right")
    table.add_column("Bedrooms", justify="right")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Confidence", justify="right")
    for row in df.itertuples(index=False):
        table.add_row(
            str(row.timestamp),
            f"{row.square_footage:,.0f}",
            str(row.bedrooms),
            f"${row.predicted_price:,.2f}",
            f"{row.confidence:.1%}",
        )
    console.print(table)


if __name__ == "__main__":
    app()
