"""Traffic-mix classifier backed by a pre-trained reconstruction model."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import joblib
import numpy as np

from txa.aggregation.models import PayloadCount
from txa.errors import ModelLoadError

logger = logging.getLogger("txa.predictor")

# Mean reconstruction loss of the model on its training set
LEARNING_LOSS = 0.001546
PREDICTION_THRESHOLD = 1.5

# LEARNING_LOSS has six decimals; the bound is compared at the same precision
NORMAL_LOSS_BOUND = round(LEARNING_LOSS * PREDICTION_THRESHOLD, 6)


class Predictor:
    """Scores ``(mt_rate, mo_rate, error_rate, normalized_max)`` feature rows.

    The artifact at ``model_path`` is a joblib-serialized model whose
    ``predict`` reconstructs its 4-feature input (an autoencoder). The
    score is the mean squared reconstruction error; a row is normal when
    the score stays within 1.5x the training loss.
    """

    def __init__(self, model_path: str | Path):
        self.model_path = Path(model_path)
        self._model: Any = None

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def init(self) -> None:
        """Load the model artifact.

        Raises:
            ModelLoadError: The artifact is missing, unreadable, or has no
                ``predict`` method.
        """
        if not self.model_path.exists():
            raise ModelLoadError(f"Model artifact not found: {self.model_path}")
        try:
            model = joblib.load(self.model_path)
        except Exception as e:
            raise ModelLoadError(f"Failed to load model {self.model_path}: {e}") from e
        if not callable(getattr(model, "predict", None)):
            raise ModelLoadError(
                f"Model {self.model_path} ({type(model).__name__}) has no predict()"
            )
        self._model = model
        logger.info("Loaded model %s from %s", type(model).__name__, self.model_path)

    def close(self) -> None:
        self._model = None

    @staticmethod
    def determine(loss: float) -> bool:
        """Whether a reconstruction loss is within the normal bound."""
        return loss <= NORMAL_LOSS_BOUND

    def predict(
        self,
        mt_rate: float,
        mo_rate: float,
        error_rate: float,
        normalized_max: float,
    ) -> bool:
        """Return True when the traffic mix looks normal."""
        vector = [mt_rate, mo_rate, error_rate, normalized_max]
        loss = self.score(vector)
        logger.debug(
            "MT[%s], MO[%s], error[%s], max[%s], predict result[%s]",
            mt_rate, mo_rate, error_rate, normalized_max, loss,
        )
        return self.determine(loss)

    def predict_count(self, count: PayloadCount, normalized_max: float) -> bool:
        """Score a single device's window aggregate."""
        vector = [count.mt_rate, count.mo_rate, count.error_rate, normalized_max]
        loss = self.score(vector)
        logger.debug(
            "device[%s]: MT[%d], MO[%d], max[%s], predict result[%s]",
            count.device_id, count.mt_count, count.mo_count, normalized_max, loss,
        )
        return self.determine(loss)

    def score(self, vector: list[float]) -> float:
        """Mean squared reconstruction error of one feature row."""
        if self._model is None:
            raise RuntimeError("Predictor.init() must be called before predicting")
        row = np.asarray([vector], dtype=np.float32)
        reconstructed = np.asarray(self._model.predict(row), dtype=np.float32).reshape(row.shape)
        return float(np.mean((row - reconstructed) ** 2))
