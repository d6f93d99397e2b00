"""
Network architecture for price regression.

The topology is fixed: 2 normalized inputs -> Dense(8, relu) ->
Dense(4, relu) -> Dense(1, linear), He-normal kernels throughout,
trained with mean squared error and Adam.
"""

from typing import Any

from tensorflow import keras

from housecast.utils.logging import get_logger

log = get_logger(__name__)

N_FEATURES = 2
DEFAULT_LEARNING_RATE = 0.01

# (units, activation) per dense layer, input side first
LAYERS: list[tuple[int, str]] = [
    (8, "relu"),
    (4, "relu"),
    (1, "linear"),
]


def compile_model(
    model: keras.Model, learning_rate: float = DEFAULT_LEARNING_RATE
) -> keras.Model:
    """
    Attach loss and optimizer to a model.

    Also used to recompile a model rebuilt from a stored artifact.

    Args:
        model: Uncompiled Keras model.
        learning_rate: Adam learning rate.

    Returns:
        The same model, compiled.
    """
    model.compile(
        optimizer=keras.optimizers.Adam(learning_rate=learning_rate),
        loss="mean_squared_error",
        metrics=["mse"],
    )
    return model


def build_model(learning_rate: float = DEFAULT_LEARNING_RATE) -> keras.Model:
    """
    Build and compile a fresh regression network.

    Args:
        learning_rate: Adam learning rate.

    Returns:
        Compiled Keras Sequential model mapping (N, 2) -> (N, 1).
    """
    model = keras.Sequential(
        [
            keras.Input(shape=(N_FEATURES,)),
            *[
                keras.layers.Dense(
                    units,
                    activation=activation,
                    kernel_initializer="he_normal",
                )
                for units, activation in LAYERS
            ],
        ]
    )
    compile_model(model, learning_rate=learning_rate)

    log.debug(
        "Built model",
        layers=[units for units, _ in LAYERS],
        n_params=model.count_params(),
        learning_rate=learning_rate,
    )
    return model


def describe_model(model: keras.Model) -> dict[str, Any]:
    """Summarize layer widths and parameter count of a model."""
    return {
        "layers": [
            {"units": layer.units, "activation": layer.activation.__name__}
            for layer in model.layers
            if isinstance(layer, keras.layers.Dense)
        ],
        "n_params": int(model.count_params()),
    }
