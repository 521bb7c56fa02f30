import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from statsmodels.tsa.stattools import adfuller

from caterpillar.config import SSAConfig
from caterpillar.database import generate_demand_data
from caterpillar.exceptions import InsufficientData
from caterpillar.ssa import ForecastEngine, diagonal_averaging

logger = logging.getLogger(__name__)

plt.rcParams['font.family'] = 'DejaVu Sans'

CHECKPOINT_NAME = "MLModel.npz"


def load_csv_data(file_path, column=None, date_column=None):
    df = pd.read_csv(file_path)
    if column is None:
        numeric = df.select_dtypes(include="number").columns
        column = numeric[0] if len(numeric) else df.columns[0]
    dates = None
    if date_column is not None:
        dates = pd.to_datetime(df[date_column])
    return df[column].to_numpy(dtype=float), dates


class TimeSeriesDataset:
    """
    Клас «Набір часових даних».

    Зберігає впорядкований ряд значень (і, за наявності, дати), але не
    виконує жодних розрахунків прогнозу.
    """

    def __init__(self, values, dates=None, name="Без назви", units=None, source=None):
        """
        :param values: одномірний numpy-масив або список значень
        :param dates: необов'язкові дати спостережень тієї ж довжини
        :param name: ім'я набору (наприклад, «Прокат велосипедів»)
        :param units: одиниці вимірювання
        :param source: опис джерела («CSV файл», «БД», «тестові дані»)
        """
        self.values = np.asarray(values, dtype=float)
        if dates is not None:
            dates = pd.DatetimeIndex(dates)
            if len(dates) != len(self.values):
                raise ValueError("Кількість дат не збігається з кількістю значень")
        self.dates = dates
        self.name = name
        self.units = units
        self.source = source

    def __len__(self):
        return len(self.values)

    @classmethod
    def from_csv(cls, file_path, column=None, date_column=None, name=None, units=None):
        values, dates = load_csv_data(file_path, column, date_column)
        if name is None:
            name = f"Дані з файлу {file_path}"
        return cls(values, dates=dates, name=name, units=units, source="CSV файл")

    @classmethod
    def from_series(cls, series: pd.Series, name="Без назви", units=None, source=None):
        return cls(series.to_numpy(dtype=float), dates=series.index, name=name,
                   units=units, source=source)

    @classmethod
    def from_demand_example(cls, n_points=730, seed=42):
        """Демонстраційний набір «щоденний попит» за два роки."""
        values = generate_demand_data(n_points=n_points, seed=seed)
        dates = pd.date_range("2011-01-01", periods=n_points, freq="D")
        return cls(values, dates=dates,
                   name="Тестовий ряд (щоденний попит)",
                   units="прокатів",
                   source="Згенеровані дані")

    def split(self, train_size):
        """Хронологічний поділ на навчальну (перші train_size точок) і тестову частини."""
        if not 0 < train_size < len(self.values):
            raise InsufficientData(
                f"train_size ({train_size}) має лежати в (0, {len(self.values)})"
            )
        parts = []
        for sl, suffix in ((slice(None, train_size), "навчання"), (slice(train_size, None), "тест")):
            dates = self.dates[sl] if self.dates is not None else None
            parts.append(TimeSeriesDataset(self.values[sl], dates=dates,
                                           name=f"{self.name} ({suffix})",
                                           units=self.units, source=self.source))
        return parts[0], parts[1]


@dataclass(frozen=True)
class EvaluationMetrics:
    mae: float
    rmse: float
    count: int


def evaluate(engine: ForecastEngine, test_values) -> EvaluationMetrics:
    """
    Оцінка прогнозу на один крок уперед по тестовій послідовності.

    Для кожного фактичного значення спочатку береться прогноз на один
    крок, потім значення подається в observe(). Працює на копії рушія,
    відновленій з контрольної точки, тож стан переданого рушія не змінюється.
    """
    actual = np.asarray(test_values, dtype=float)
    if len(actual) == 0:
        raise InsufficientData("Тестова послідовність порожня")
    shadow = ForecastEngine.from_checkpoint(engine.checkpoint())
    errors = np.empty(len(actual))
    for i, value in enumerate(actual):
        errors[i] = value - shadow.forecast(1)[0].value
        shadow.observe(float(value))
    return EvaluationMetrics(
        mae=float(np.mean(np.abs(errors))),
        rmse=float(np.sqrt(np.mean(errors ** 2))),
        count=len(actual),
    )


def stationarity_check(values, significance=0.05):
    """
    Тест Дікі-Фуллера для навчального ряду (лише для звіту).

    :return: словник зі статистикою та p-value або None, якщо ряд закороткий
    """
    values = np.asarray(values, dtype=float)
    if len(values) < 20 or np.ptp(values) == 0:
        return None
    adf_result = adfuller(values)
    return {
        'adf_statistic': float(adf_result[0]),
        'adf_pvalue': float(adf_result[1]),
        'is_stationary': bool(adf_result[1] < significance),
    }


def format_forecast_report(points, actual=None, dates=None, lower_floor=0.0):
    """
    Текстовий звіт по кроках прогнозу.

    Нижня межа обрізається знизу значенням lower_floor (None – без обрізання).
    """
    lines = []
    for i, point in enumerate(points):
        lower = point.lower_bound if lower_floor is None else max(lower_floor, point.lower_bound)
        label = dates[i].strftime("%Y-%m-%d") if dates is not None and i < len(dates) else f"t+{point.step}"
        block = [f"Дата: {label}"]
        if actual is not None and i < len(actual):
            block.append(f"Фактичне значення: {actual[i]:.2f}")
        block += [
            f"Нижня оцінка: {lower:.2f}",
            f"Прогноз: {point.value:.2f}",
            f"Верхня оцінка: {point.upper_bound:.2f}",
        ]
        lines.append("\n".join(block))
    return lines


def plot_training_fit(window, reconstructed, contributions, title, save_path, show=True):
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    fig.suptitle(title, fontsize=14, fontweight='bold')

    axes[0].plot(window, 'b-', alpha=0.6, label='Навчальне вікно')
    axes[0].plot(reconstructed, 'r-', linewidth=1.5, label='Реконструкція рангу r')
    axes[0].set_title('Реконструйований ряд')
    axes[0].set_xlabel('Час')
    axes[0].set_ylabel('Значення')
    axes[0].legend()
    axes[0].grid(True, alpha=0.3)

    axes[1].bar(range(1, len(contributions) + 1), contributions, color='steelblue')
    axes[1].set_title('Внесок компонент (Singular Values)')
    axes[1].set_xlabel('Номер компоненти')
    axes[1].set_ylabel('Внесок (%)')
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


def plot_forecast(history, points, save_path, actual=None, lower_floor=0.0,
                  confidence_level=0.95, show=True):
    fig, ax = plt.subplots(figsize=(14, 6))
    n = len(history)
    steps = np.arange(n, n + len(points))
    values = [p.value for p in points]
    lower = [p.lower_bound if lower_floor is None else max(lower_floor, p.lower_bound) for p in points]
    upper = [p.upper_bound for p in points]

    ax.plot(range(n), history, 'b-', alpha=0.7, label='Історія', linewidth=1)
    ax.plot(steps, values, 'r--', linewidth=2, label='Прогноз SSA')
    ax.fill_between(steps, lower, upper, color='red', alpha=0.2,
                    label=f'{confidence_level:.0%} довірчий інтервал')
    if actual is not None:
        k = min(len(actual), len(points))
        ax.plot(steps[:k], actual[:k], 'g.-', label='Фактичні значення')
    ax.axvline(x=n - 1, color='gray', linestyle=':', label='Початок прогнозу')
    ax.set_title('SSA (Гусениця): прогноз з довірчим інтервалом', fontsize=12)
    ax.set_xlabel('Час')
    ax.set_ylabel('Значення')
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    if show:
        plt.show()
    plt.close(fig)


class ForecastPipeline:
    """
    Клас «Конвеєр прогнозування».

    Головний керуючий блок: отримує навчальні та тестові дані, навчає
    ForecastEngine, оцінює його, зберігає контрольну точку, будує
    прогноз і передає результати модулю візуалізації.
    """

    def __init__(self, train: TimeSeriesDataset, test: TimeSeriesDataset,
                 config: SSAConfig, output_dir="results", lower_floor=0.0):
        self.train = train
        self.test = test
        self.config = config
        self.lower_floor = lower_floor
        self.output_dir = Path(output_dir).expanduser()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.engine = ForecastEngine(config)
        self.metrics = None
        self.points = None

    def run(self, show_plots=True, make_plots=True, command_info=None):
        """
        Основний сценарій роботи програми:
        1) навчання,
        2) оцінка на тестовій частині (MAE, RMSE),
        3) збереження контрольної точки,
        4) прогноз з рушія, відновленого з контрольної точки,
        5) графіки та інформація про команду.
        """
        if show_plots is False:
            plt.ioff()

        # 1. Навчання
        recurrence = self.engine.train(self.train.values)

        # 2. Оцінка
        if len(self.test) > 0:
            self.metrics = evaluate(self.engine, self.test.values)

        # 3. Контрольна точка
        checkpoint_path = self.engine.save(self.output_dir / CHECKPOINT_NAME)

        # 4. Прогноз
        restored = ForecastEngine.load(checkpoint_path)
        self.points = restored.forecast()

        horizon = len(self.points)
        actual = self.test.values[:horizon] if len(self.test) > 0 else None
        dates = self.test.dates[:horizon] if self.test.dates is not None else None
        report = format_forecast_report(self.points, actual=actual, dates=dates,
                                        lower_floor=self.lower_floor)

        paths = {"checkpoint": checkpoint_path}
        if make_plots:
            # 5. Графіки
            window = self.train.values[-self.config.training_length:]
            reconstructed = diagonal_averaging(recurrence.basis.reconstruct())
            fit_path = self.output_dir / "ssa_fit.png"
            print(f"   Збереження графіка реконструкції: {fit_path}")
            plot_training_fit(window, reconstructed, recurrence.basis.contributions(10),
                              "SSA Аналіз (Метод Гусениця)", fit_path, show=show_plots)
            forecast_path = self.output_dir / "forecast.png"
            print(f"   Збереження графіка прогнозу: {forecast_path}")
            plot_forecast(self.train.values[-self.config.series_length:], self.points,
                          forecast_path, actual=actual, lower_floor=self.lower_floor,
                          confidence_level=self.config.confidence_level, show=show_plots)
            paths.update({"fit": fit_path, "forecast": forecast_path})

        if command_info:
            command_path = self.output_dir / "command.txt"
            with open(command_path, 'w', encoding='utf-8') as f:
                f.write(f"Дата та час запуску: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
                f.write(f"\nВикористана команда:\n{command_info['command']}\n")
                f.write(f"\nПараметри:\n")
                for key, value in command_info['args'].items():
                    f.write(f"  {key}: {value}\n")
                f.write(f"\nДані:\n")
                f.write(f"  Назва набору: {self.train.name}\n")
                f.write(f"  Джерело: {self.train.source}\n")
                f.write(f"  Точок для навчання: {len(self.train)}\n")
                f.write(f"  Точок для тесту: {len(self.test)}\n")
            paths["command"] = command_path

        return {
            "engine": self.engine,
            "recurrence": recurrence,
            "metrics": self.metrics,
            "points": self.points,
            "report": report,
            "stationarity": stationarity_check(self.train.values),
            "paths": paths,
        }


__all__ = [
    "TimeSeriesDataset",
    "EvaluationMetrics",
    "ForecastPipeline",
    "evaluate",
    "stationarity_check",
    "format_forecast_report",
    "generate_demand_data",
    "load_csv_data",
    "plot_forecast",
    "plot_training_fit",
]
