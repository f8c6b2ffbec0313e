"""
Model backends.

The engine treats model fitting as an opaque capability: a backend fits a
formula against prepared data and knows how to turn its own fitted objects
into tidy parameter and performance tables. ``StatsmodelsBackend`` is the
default; other backends subclass ``ModelBackend`` and register by name.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type
import logging

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf

from multiverse.errors import PipelineExecutionError

logger = logging.getLogger(__name__)

PARAMETER_COLUMNS = [
    "parameter",
    "coefficient",
    "std_error",
    "statistic",
    "p_value",
    "conf_low",
    "conf_high",
]

PERFORMANCE_COLUMNS = [
    "nobs",
    "df_model",
    "r_squared",
    "adj_r_squared",
    "aic",
    "bic",
    "log_likelihood",
]


class ModelBackend(ABC):
    """
    Abstract base class for model fitting backends.
    Defines the capability interface the executor and unpacker rely on.
    """

    name: str = "base"

    @abstractmethod
    def fit(
        self,
        data: pd.DataFrame,
        formula: str,
        method: str,
        model_kwargs: Optional[Dict[str, Any]] = None,
        fit_kwargs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Fit ``formula`` on ``data`` with the backend's ``method``.

        Returns:
            Fitted model artifact, opaque to the engine.

        Raises:
            PipelineExecutionError: (stage ``model``) on unknown method or
                failed estimation.
        """
        raise NotImplementedError("Subclasses must implement 'fit'")

    @abstractmethod
    def tidy(self, fitted: Any) -> pd.DataFrame:
        """One row per parameter with PARAMETER_COLUMNS."""
        raise NotImplementedError("Subclasses must implement 'tidy'")

    @abstractmethod
    def glance(self, fitted: Any) -> Dict[str, Any]:
        """One-row model performance summary keyed by PERFORMANCE_COLUMNS."""
        raise NotImplementedError("Subclasses must implement 'glance'")


class StatsmodelsBackend(ModelBackend):
    """Fits models through ``statsmodels.formula.api``."""

    name = "statsmodels"

    METHODS: Dict[str, Callable[..., Any]] = {
        "ols": smf.ols,
        "wls": smf.wls,
        "glm": smf.glm,
        "logit": smf.logit,
        "probit": smf.probit,
        "poisson": smf.poisson,
        "negativebinomial": smf.negativebinomial,
        "mixedlm": smf.mixedlm,
        "rlm": smf.rlm,
        "quantreg": smf.quantreg,
    }

    FAMILIES: Dict[str, Callable[[], Any]] = {
        "gaussian": sm.families.Gaussian,
        "binomial": sm.families.Binomial,
        "poisson": sm.families.Poisson,
        "gamma": sm.families.Gamma,
        "negativebinomial": sm.families.NegativeBinomial,
        "inversegaussian": sm.families.InverseGaussian,
        "tweedie": sm.families.Tweedie,
    }

    # Discrete models print optimizer progress unless told otherwise.
    QUIET_METHODS = {"logit", "probit", "poisson", "negativebinomial"}

    def fit(self, data, formula, method, model_kwargs=None, fit_kwargs=None):
        factory = self.METHODS.get(method.lower())
        if factory is None:
            raise PipelineExecutionError(
                "model",
                f"Model method '{method}' not supported. Available: {sorted(self.METHODS)}",
            )

        model_kwargs = dict(model_kwargs or {})
        fit_kwargs = dict(fit_kwargs or {})
        family = model_kwargs.get("family")
        if isinstance(family, str):
            if family.lower() not in self.FAMILIES:
                raise PipelineExecutionError("model", f"Unknown GLM family '{family}'")
            model_kwargs["family"] = self.FAMILIES[family.lower()]()
        if method.lower() in self.QUIET_METHODS:
            fit_kwargs.setdefault("disp", 0)

        logger.debug(f"Fitting {method}('{formula}') on {len(data)} rows")
        fitted = factory(formula, data=data, **model_kwargs).fit(**fit_kwargs)

        if self._converged(fitted) is False:
            raise PipelineExecutionError(
                "model", f"{method}('{formula}') did not converge", reason="non_convergence"
            )
        return fitted

    @staticmethod
    def _converged(fitted: Any) -> Optional[bool]:
        if hasattr(fitted, "converged"):
            return bool(fitted.converged)
        retvals = getattr(fitted, "mle_retvals", None)
        if isinstance(retvals, dict) and "converged" in retvals:
            return bool(retvals["converged"])
        return None

    def tidy(self, fitted):
        params = pd.Series(fitted.params)
        conf = pd.DataFrame(fitted.conf_int())
        table = pd.DataFrame({
            "parameter": params.index.astype(str),
            "coefficient": params.to_numpy(dtype=float),
            "std_error": pd.Series(fitted.bse).reindex(params.index).to_numpy(dtype=float),
            "statistic": pd.Series(fitted.tvalues).reindex(params.index).to_numpy(dtype=float),
            "p_value": pd.Series(fitted.pvalues).reindex(params.index).to_numpy(dtype=float),
            "conf_low": conf.iloc[:, 0].reindex(params.index).to_numpy(dtype=float),
            "conf_high": conf.iloc[:, 1].reindex(params.index).to_numpy(dtype=float),
        })
        return table[PARAMETER_COLUMNS]

    def glance(self, fitted):
        aliases = {
            "nobs": "nobs",
            "df_model": "df_model",
            "r_squared": "rsquared",
            "adj_r_squared": "rsquared_adj",
            "aic": "aic",
            "bic": "bic",
            "log_likelihood": "llf",
        }
        summary: Dict[str, Any] = {}
        for column, attr in aliases.items():
            summary[column] = self._statistic(fitted, attr)
        return summary

    @staticmethod
    def _statistic(fitted: Any, attr: str) -> Optional[float]:
        # Some results classes compute these lazily and raise when undefined.
        try:
            value = getattr(fitted, attr)
        except (AttributeError, NotImplementedError, ValueError, TypeError):
            return None
        if value is None:
            return None
        try:
            return float(np.asarray(value).item())
        except (TypeError, ValueError):
            return None


# Mapping of backend names to their classes
BACKENDS: Dict[str, Type[ModelBackend]] = {
    StatsmodelsBackend.name: StatsmodelsBackend,
}


def get_backend(name: str = "statsmodels") -> ModelBackend:
    """
    Instantiate a model backend by name.

    Raises:
        ValueError: If backend not found
    """
    backend_cls = BACKENDS.get(name.lower())
    if backend_cls is None:
        valid = list(BACKENDS.keys())
        raise ValueError(f"Backend '{name}' not supported. Available: {valid}")
    return backend_cls()


def register_backend(backend_cls: Type[ModelBackend]) -> None:
    """Make ``backend_cls`` available to ``get_backend`` under its ``name``."""
    BACKENDS[backend_cls.name.lower()] = backend_cls
