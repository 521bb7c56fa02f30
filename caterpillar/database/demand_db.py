import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def generate_demand_data(n_points=730, seed=42):
    """
    Генерація штучного ряду щоденного попиту.

    Тренд + тижнева сезонність + шум; значення невід'ємні.
    """
    rng = np.random.default_rng(seed)
    t = np.arange(n_points)
    trend = 3000 + 2.0 * t
    weekly = 600 * np.sin(2 * np.pi * t / 7)
    noise = rng.normal(0, 150, n_points)
    return np.maximum(trend + weekly + noise, 0.0)


@dataclass(frozen=True)
class DailyObservation:
    """
    Одне денне спостереження попиту.

    Після запису в БД не змінюється.
    """
    obs_date: str         # дата у форматі 'YYYY-MM-DD'
    year: int             # закодований рік спостереження (0 – перший рік, 1 – другий, ...)
    total: float          # числове значення ряду (наприклад, кількість прокатів)


class DemandDB:
    """
    Сховище денних спостережень на SQLite.

    Відповідає лише за зберігання та вибірку ряду (дата, значення);
    жодних обчислень прогнозу тут немає.
    """

    def __init__(self, db_path: str = None):
        if db_path is None:
            # За замовчуванням зберігаємо БД в папці data/ поточного каталогу
            data_dir = Path.cwd() / "data"
            data_dir.mkdir(exist_ok=True)
            self.db_path = str(data_dir / "daily_demand.db")
        else:
            self.db_path = str(db_path)
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self):
        """Встановлення з'єднання з БД."""
        if self.conn is None:
            self.conn = sqlite3.connect(self.db_path)
        return self.conn

    def close(self):
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        self.create_tables()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def create_tables(self):
        """Створення таблиці спостережень, якщо вона ще не існує."""
        conn = self.connect()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS observations (
                obs_date TEXT PRIMARY KEY,
                year INTEGER NOT NULL,
                total REAL NOT NULL
            );
            """
        )
        conn.commit()

    def insert_observation(self, obs: DailyObservation, replace: bool = False):
        """
        Додавання одного спостереження.

        :param replace: якщо False, запис з уже наявною датою пропускається
        """
        self.insert_many([obs], replace=replace)

    def insert_many(self, observations, replace: bool = False):
        verb = "INSERT OR REPLACE" if replace else "INSERT OR IGNORE"
        conn = self.connect()
        conn.executemany(
            f"{verb} INTO observations (obs_date, year, total) VALUES (?, ?, ?);",
            [(o.obs_date, int(o.year), float(o.total)) for o in observations],
        )
        conn.commit()

    def count(self) -> int:
        cur = self.connect().execute("SELECT COUNT(*) FROM observations;")
        return cur.fetchone()[0]

    def ensure_demo_data(self, n_days: int = 730, seed: int = 42, force_reload: bool = False):
        """
        Заповнення БД синтетичними даними за два роки, якщо вона порожня.

        Ряд має тренд, тижневу сезонність і шум – схоже на щоденний
        попит на прокат велосипедів.
        """
        if self.count() > 0 and not force_reload:
            logger.info("База даних вже містить %d записів, пропускаємо завантаження", self.count())
            return

        start = date(2011, 1, 1)
        values = generate_demand_data(n_days, seed=seed)
        observations = [
            DailyObservation(
                obs_date=(start + timedelta(days=int(i))).isoformat(),
                year=int(i // 365),
                total=float(v),
            )
            for i, v in enumerate(values)
        ]
        self.insert_many(observations, replace=True)
        logger.info("Згенеровано %d демонстраційних записів", len(observations))

    def load_from_csv(self, csv_path: str, date_column: str = "date",
                      value_column: str = "total", clear_existing: bool = False) -> int:
        """
        Завантаження денних спостережень з CSV файлу в базу даних.

        Рік кодується відносно першого року у файлі (0, 1, ...).

        :return: кількість завантажених рядків
        """
        csv_path = Path(csv_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV файл не знайдено: {csv_path}")

        df = pd.read_csv(csv_path)
        required_columns = [date_column, value_column]
        if not all(col in df.columns for col in required_columns):
            raise ValueError(f"CSV файл повинен містити стовпці: {required_columns}")

        dates = pd.to_datetime(df[date_column], errors="coerce")
        values = pd.to_numeric(df[value_column], errors="coerce")
        valid = dates.notna() & values.notna()
        skipped = int((~valid).sum())
        if skipped:
            logger.warning("Пропущено %d рядків з некоректною датою або значенням", skipped)
        dates, values = dates[valid], values[valid]
        if dates.empty:
            return 0

        if clear_existing:
            conn = self.connect()
            conn.execute("DELETE FROM observations;")
            conn.commit()

        first_year = int(dates.dt.year.min())
        observations = [
            DailyObservation(obs_date=d.strftime("%Y-%m-%d"), year=int(d.year) - first_year,
                             total=float(v))
            for d, v in zip(dates, values)
        ]
        self.insert_many(observations, replace=True)
        return len(observations)

    def load_series(self, start: Optional[str] = None, end: Optional[str] = None) -> pd.Series:
        """
        Вибірка ряду за діапазоном дат (обидві межі включно).

        :return: pandas.Series зі значеннями, індексована датами в хронологічному порядку
        """
        query = "SELECT obs_date, total FROM observations"
        conditions, params = [], []
        if start is not None:
            conditions.append("obs_date >= ?")
            params.append(_normalize_date(start))
        if end is not None:
            conditions.append("obs_date <= ?")
            params.append(_normalize_date(end))
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY obs_date;"

        rows = self.connect().execute(query, params).fetchall()
        index = pd.to_datetime([row[0] for row in rows])
        return pd.Series([row[1] for row in rows], index=index, dtype=float, name="total")

    def split_by_year(self, boundary: int = 1):
        """
        Поділ ряду на навчальну та тестову частини за закодованим роком.

        Навчальна: year < boundary, тестова: year >= boundary.
        Обидві частини впорядковані хронологічно й не перетинаються.
        """
        conn = self.connect()
        frames = []
        for condition in ("year < ?", "year >= ?"):
            rows = conn.execute(
                f"SELECT obs_date, total FROM observations WHERE {condition} ORDER BY obs_date;",
                (boundary,),
            ).fetchall()
            index = pd.to_datetime([row[0] for row in rows])
            frames.append(pd.Series([row[1] for row in rows], index=index, dtype=float,
                                    name="total"))
        return frames[0], frames[1]


def _normalize_date(value) -> str:
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    return pd.to_datetime(value).strftime("%Y-%m-%d")


__all__ = ["DemandDB", "DailyObservation", "generate_demand_data"]
