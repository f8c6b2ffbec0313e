import numpy as np
import pandas as pd
import pytest

from multiverse.blueprint.blueprint import Blueprint


@pytest.fixture
def survey_df():
    """Synthetic survey-style dataset: outcome, three predictors, items, clusters."""
    rng = np.random.default_rng(42)
    n = 500
    latent = rng.normal(size=n)
    iv1 = rng.normal(size=n)
    iv2 = rng.normal(size=n)
    iv3 = rng.normal(size=n)
    df = pd.DataFrame({
        "y": 1.0 + 0.5 * iv1 - 0.3 * iv2 + rng.normal(scale=1.0, size=n),
        "iv1": iv1,
        "iv2": iv2,
        "iv3": iv3,
        "noise": np.abs(rng.normal(scale=1.5, size=n)),
        "age": rng.integers(12, 80, size=n),
        "item1": latent + rng.normal(scale=0.5, size=n),
        "item2": latent + rng.normal(scale=0.5, size=n),
        "item3": latent + rng.normal(scale=0.5, size=n),
        "item4": latent + rng.normal(scale=0.5, size=n),
        "cluster": rng.integers(0, 10, size=n),
    })
    return df


@pytest.fixture
def blueprint(survey_df):
    """Empty blueprint over the survey dataset."""
    return Blueprint.from_dataset(survey_df)
