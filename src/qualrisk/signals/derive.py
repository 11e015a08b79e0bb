from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from qualrisk.records import coerce_number, round_half_up
from qualrisk.signals.hashing import hash_string
from qualrisk.signals.series import clamp01, synthesize
from qualrisk.signals.stream import make_stream

DEFAULT_SERIES_LENGTH = 32
TOP_DRIVER_COUNT = 3

HOLD_THRESHOLD = 0.72
ENHANCED_THRESHOLD = 0.42

# Scalar draws taken from the per-record stream, in consumption order.
DRAW_ORDER: tuple[str, ...] = (
    "spatter_intensity",
    "melt_pool_instability",
    "recoater_interaction",
    "plume_opacity",
    "gas_flow_margin",
    "anomaly_jitter",
    "pore_count_noise",
    "density_noise",
    "first_pass_yield_noise",
)

DispositionCode = Literal["hold", "enhanced", "proceed"]


@dataclass(frozen=True)
class SignalSpec:
    name: str
    label: str
    offset: float
    weight: float
    noise: float
    note: str

    def score(self, risk: float, draw: float) -> float:
        return clamp01(self.offset + self.weight * risk + (draw - 0.5) * self.noise)


SIGNAL_SPECS: tuple[SignalSpec, ...] = (
    SignalSpec(
        name="spatter_intensity",
        label="Spatter intensity",
        offset=0.10,
        weight=0.80,
        noise=0.18,
        note="Elevated spatter ejection tracks lack-of-fusion porosity in the upskin.",
    ),
    SignalSpec(
        name="melt_pool_instability",
        label="Melt-pool instability",
        offset=0.08,
        weight=0.78,
        noise=0.20,
        note="Melt-pool oscillation points to keyholing or balling on thin walls.",
    ),
    SignalSpec(
        name="recoater_interaction",
        label="Recoater interaction",
        offset=0.05,
        weight=0.60,
        noise=0.22,
        note="Recoater contact events suggest edge curl or swelling above the bed.",
    ),
    SignalSpec(
        name="plume_opacity",
        label="Plume opacity",
        offset=0.12,
        weight=0.70,
        noise=0.16,
        note="Dense process plume attenuates beam energy reaching the powder bed.",
    ),
    SignalSpec(
        name="gas_flow_margin",
        label="Gas-flow margin",
        offset=0.92,
        weight=-0.65,
        noise=0.14,
        note="Cross-flow margin dominates; confirm flow calibration before release.",
    ),
)


@dataclass(frozen=True)
class SeriesSpec:
    name: str
    suffix: str
    delta: float


SERIES_SPECS: tuple[SeriesSpec, ...] = (
    SeriesSpec(name="melt_pool_trend", suffix=":melt-pool", delta=0.03),
    SeriesSpec(name="spatter_trend", suffix=":spatter", delta=-0.02),
    SeriesSpec(name="layer_temperature_trend", suffix=":layer-temp", delta=0.05),
)

DISPOSITION_LABELS: dict[DispositionCode, str] = {
    "hold": "Hold for inspection",
    "enhanced": "Proceed with enhanced inspection",
    "proceed": "Proceed",
}


@dataclass(frozen=True)
class Driver:
    name: str
    label: str
    score: float
    note: str


@dataclass(frozen=True)
class PredictedOutcomes:
    pore_count: int
    relative_density: float
    first_pass_yield: float


@dataclass(frozen=True)
class Disposition:
    code: DispositionCode
    label: str


@dataclass(frozen=True)
class DerivedSignalSet:
    run_id: str
    risk: float
    sub_scores: dict[str, float]
    series: dict[str, list[float]]
    anomaly_count: int
    top_drivers: tuple[Driver, ...]
    predictions: PredictedOutcomes
    disposition: Disposition
    draws: dict[str, float] = field(default_factory=dict, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "risk": self.risk,
            "sub_scores": dict(self.sub_scores),
            "series": {name: list(values) for name, values in self.series.items()},
            "anomaly_count": self.anomaly_count,
            "top_drivers": [
                {
                    "name": driver.name,
                    "label": driver.label,
                    "score": driver.score,
                    "note": driver.note,
                }
                for driver in self.top_drivers
            ],
            "predictions": {
                "pore_count": self.predictions.pore_count,
                "relative_density": self.predictions.relative_density,
                "first_pass_yield": self.predictions.first_pass_yield,
            },
            "disposition": {"code": self.disposition.code, "label": self.disposition.label},
        }


def risk_fraction(risk_score: Any) -> float:
    return clamp01(coerce_number(risk_score) / 100)


def record_seed(run_id: str, context: Sequence[str] = ()) -> int:
    return hash_string("|".join([run_id, *context]))


def select_disposition(risk: float) -> Disposition:
    if risk >= HOLD_THRESHOLD:
        code: DispositionCode = "hold"
    elif risk >= ENHANCED_THRESHOLD:
        code = "enhanced"
    else:
        code = "proceed"
    return Disposition(code=code, label=DISPOSITION_LABELS[code])


def rank_drivers(sub_scores: dict[str, float], top_n: int = TOP_DRIVER_COUNT) -> tuple[Driver, ...]:
    """Highest sub-scores first; ties keep SIGNAL_SPECS order."""
    ranked = sorted(SIGNAL_SPECS, key=lambda spec: sub_scores[spec.name], reverse=True)
    return tuple(
        Driver(name=spec.name, label=spec.label, score=sub_scores[spec.name], note=spec.note)
        for spec in ranked[:top_n]
    )


def predict_outcomes(risk: float, draws: dict[str, float]) -> PredictedOutcomes:
    pore_count = max(0, round_half_up(2 + 18 * risk + (draws["pore_count_noise"] - 0.5) * 4))
    relative_density = clamp01(0.9995 - 0.012 * risk + (draws["density_noise"] - 0.5) * 0.002)
    first_pass_yield = clamp01(0.97 - 0.60 * risk + (draws["first_pass_yield_noise"] - 0.5) * 0.10)
    return PredictedOutcomes(
        pore_count=pore_count,
        relative_density=relative_density,
        first_pass_yield=first_pass_yield,
    )


def derive_signals(
    run_id: str,
    risk_score: Any,
    context: Sequence[str] = (),
    *,
    series_length: int = DEFAULT_SERIES_LENGTH,
) -> DerivedSignalSet:
    run_id = run_id or ""
    stream = make_stream(record_seed(run_id, [str(value or "") for value in context]))
    draws = {name: stream() for name in DRAW_ORDER}
    risk = risk_fraction(risk_score)

    sub_scores = {spec.name: spec.score(risk, draws[spec.name]) for spec in SIGNAL_SPECS}
    series = {
        spec.name: synthesize(
            hash_string(run_id + spec.suffix),
            clamp01(risk + spec.delta),
            series_length,
        )
        for spec in SERIES_SPECS
    }
    anomaly_count = max(0, round_half_up(risk * 6 + draws["anomaly_jitter"] * 2.2 - 0.6))

    return DerivedSignalSet(
        run_id=run_id,
        risk=risk,
        sub_scores=sub_scores,
        series=series,
        anomaly_count=anomaly_count,
        top_drivers=rank_drivers(sub_scores),
        predictions=predict_outcomes(risk, draws),
        disposition=select_disposition(risk),
        draws=draws,
    )


def quick_indicators(risk_score: Any) -> dict[str, float]:
    """Fixed-formula indicator bars shown next to a run's risk score."""
    risk = risk_fraction(risk_score) * 100
    return {
        "thermal_drift": clamp01(risk / 100),
        "spatter_proxy": clamp01(0.25 + risk / 120),
        "recoater_risk": clamp01(0.15 + risk / 180),
    }
