import numpy as np
import pandas as pd
import pytest

from caterpillar.config import SSAConfig
from caterpillar.exceptions import InsufficientData
from caterpillar.main import main
from caterpillar.pipeline import (
    ForecastPipeline,
    TimeSeriesDataset,
    evaluate,
    format_forecast_report,
    generate_demand_data,
    stationarity_check,
)
from caterpillar.ssa.engine import ForecastEngine, ForecastPoint


def test_evaluate_does_not_touch_engine(sine_series):
    engine = ForecastEngine(SSAConfig())
    engine.train(sine_series[:365])
    window = engine.window()
    metrics = evaluate(engine, sine_series[365:])
    assert metrics.count == 35
    assert 0 <= metrics.mae <= metrics.rmse
    assert np.array_equal(engine.window(), window)


def test_evaluate_exact_on_linear_series():
    engine = ForecastEngine(SSAConfig(window_size=3))
    engine.train(np.arange(40, dtype=float))
    metrics = evaluate(engine, np.arange(40, 60, dtype=float))
    assert metrics.mae == pytest.approx(0.0, abs=1e-6)
    assert metrics.rmse == pytest.approx(0.0, abs=1e-6)


def test_evaluate_rejects_empty_test():
    engine = ForecastEngine()
    engine.train(np.full(30, 1.0))
    with pytest.raises(InsufficientData):
        evaluate(engine, [])


def test_dataset_split_keeps_dates():
    dataset = TimeSeriesDataset.from_demand_example(n_points=100, seed=3)
    train, test = dataset.split(80)
    assert len(train) == 80 and len(test) == 20
    assert train.dates[-1] < test.dates[0]
    with pytest.raises(InsufficientData):
        dataset.split(100)


def test_dataset_from_csv(tmp_path):
    path = tmp_path / "series.csv"
    pd.DataFrame({"day": pd.date_range("2020-01-01", periods=5).astype(str),
                  "value": [1, 2, 3, 4, 5]}).to_csv(path, index=False)
    dataset = TimeSeriesDataset.from_csv(path, date_column="day")
    assert dataset.values.tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert dataset.dates[0] == pd.Timestamp("2020-01-01")


def test_generate_demand_data_is_reproducible():
    first = generate_demand_data(50, seed=9)
    assert np.array_equal(first, generate_demand_data(50, seed=9))
    assert (first >= 0).all()


def test_report_clamps_lower_bound():
    points = [ForecastPoint(step=1, value=1.0, lower_bound=-2.0, upper_bound=4.0)]
    report = format_forecast_report(points, actual=[1.5], lower_floor=0.0)
    assert "Нижня оцінка: 0.00" in report[0]
    assert "Фактичне значення: 1.50" in report[0]
    raw = format_forecast_report(points, lower_floor=None)
    assert "Нижня оцінка: -2.00" in raw[0]
    assert "t+1" in raw[0]


def test_stationarity_check():
    assert stationarity_check([1.0, 2.0, 3.0]) is None
    noise = np.random.default_rng(0).normal(size=300)
    result = stationarity_check(noise)
    assert result["is_stationary"] is True
    assert 0.0 <= result["adf_pvalue"] < 0.05


def test_pipeline_run_without_plots(tmp_path):
    dataset = TimeSeriesDataset.from_demand_example(n_points=400)
    train, test = dataset.split(365)
    pipeline = ForecastPipeline(train, test, SSAConfig(train_size=365), output_dir=tmp_path)
    results = pipeline.run(show_plots=False, make_plots=False,
                           command_info={"command": "test", "args": {"window": 7}})
    assert results["paths"]["checkpoint"].exists()
    assert results["paths"]["command"].exists()
    assert len(results["points"]) == 7
    assert len(results["report"]) == 7
    assert results["metrics"].count == 35


def test_pipeline_run_with_plots(tmp_path):
    dataset = TimeSeriesDataset.from_demand_example(n_points=120)
    train, test = dataset.split(100)
    pipeline = ForecastPipeline(train, test, SSAConfig(), output_dir=tmp_path)
    results = pipeline.run(show_plots=False)
    assert results["paths"]["fit"].exists()
    assert results["paths"]["forecast"].exists()


def test_main_with_demo_data(tmp_path, capsys):
    code = main(["--no-plots", "--points", "400", "--output-dir", str(tmp_path)])
    assert code == 0
    assert (tmp_path / "MLModel.npz").exists()
    out = capsys.readouterr().out
    assert "MAE" in out and "RMSE" in out


def test_main_with_database(tmp_path):
    code = main(["--no-plots", "--use-db", "--db-path", str(tmp_path / "demand.db"),
                 "--output-dir", str(tmp_path / "out")])
    assert code == 0
    assert (tmp_path / "out" / "MLModel.npz").exists()


def test_main_reports_configuration_errors(tmp_path, capsys):
    code = main(["--no-plots", "--window", "40", "--output-dir", str(tmp_path)])
    assert code == 1
    assert "InvalidConfiguration" in capsys.readouterr().out
