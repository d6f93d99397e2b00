"""
Pandera schema for the training corpus.

The corpus is owned by an external datastore; rows are validated here
at the boundary before they reach the normalizer.
"""

from collections.abc import Iterable

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

from housecast.schemas.records import TrainingExample

TRAINING_COLUMNS = ["square_footage", "bedrooms", "price"]


class TrainingExampleSchema(pa.DataFrameModel):
    """
    Schema for training examples.

    One row per sold property with its two features and sale price.
    """

    square_footage: Series[float] = pa.Field(
        gt=0,
        description="Living area in square feet",
    )
    # Validated as float; frame_to_examples converts to int
    bedrooms: Series[float] = pa.Field(
        ge=1,
        description="Number of bedrooms (whole number)",
    )
    price: Series[float] = pa.Field(
        gt=0,
        description="Observed sale price",
    )

    @pa.check("bedrooms", name="whole_number")
    @classmethod
    def bedrooms_are_whole(cls, series: Series[float]) -> Series[bool]:
        """Reject fractional bedroom counts such as 2.5."""
        return series == series.round()

    class Config:
        """Schema configuration."""

        name = "TrainingExampleSchema"
        strict = False  # Allow extra columns (ids, timestamps)
        coerce = True


def examples_to_frame(examples: Iterable[TrainingExample]) -> pd.DataFrame:
    """
    Build a validated DataFrame from training examples.

    Args:
        examples: Training examples.

    Returns:
        DataFrame with the training columns, validated by TrainingExampleSchema.
    """
    rows = [
        {
            "square_footage": ex.square_footage,
            "bedrooms": ex.bedrooms,
            "price": ex.price,
        }
        for ex in examples
    ]
    df = pd.DataFrame(rows, columns=TRAINING_COLUMNS)
    return TrainingExampleSchema.validate(df)


def frame_to_examples(df: pd.DataFrame) -> list[TrainingExample]:
    """
    Convert a validated DataFrame back into training examples.

    Args:
        df: DataFrame with the training columns.

    Returns:
        List of TrainingExample in row order.
    """
    validated = TrainingExampleSchema.validate(df)
    return [
        TrainingExample(
            square_footage=float(row.square_footage),
            bedrooms=int(row.bedrooms),
            price=float(row.price),
        )
        for row in validated[TRAINING_COLUMNS].itertuples(index=False)
    ]
