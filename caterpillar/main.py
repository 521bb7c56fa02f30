import argparse
import logging
import sys

from caterpillar.config import SSAConfig
from caterpillar.database import DemandDB
from caterpillar.exceptions import SSAError
from caterpillar.pipeline import ForecastPipeline, TimeSeriesDataset


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Прогнозування часових рядів методом SSA (Гусениця) з довірчими інтервалами',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--data', type=str, default=None,
                        help='Шлях до CSV файлу з даними')
    parser.add_argument('--column', type=str, default=None,
                        help='Назва стовпця з даними в CSV')
    parser.add_argument('--date-column', type=str, default=None,
                        help='Назва стовпця з датами в CSV')
    parser.add_argument('--use-db', action='store_true',
                        help='Використовувати SQLite БД денних спостережень замість CSV/штучних даних')
    parser.add_argument('--db-path', type=str, default=None,
                        help='Шлях до файлу SQLite БД (за замовчуванням: data/daily_demand.db)')
    parser.add_argument('--points', type=int, default=730,
                        help='Кількість точок для генерації тестових даних (за замовчуванням: 730)')
    parser.add_argument('--seed', type=int, default=42,
                        help='Seed для генератора випадкових чисел (за замовчуванням: 42)')
    parser.add_argument('--window', type=int, default=7,
                        help='Довжина вікна L для SSA (за замовчуванням: 7)')
    parser.add_argument('--series-length', type=int, default=30,
                        help='Місткість буфера N (за замовчуванням: 30)')
    parser.add_argument('--train-size', type=int, default=365,
                        help='Кількість точок для навчання (за замовчуванням: 365)')
    parser.add_argument('--horizon', type=int, default=7,
                        help='Кількість кроків прогнозу (за замовчуванням: 7)')
    parser.add_argument('--confidence', type=float, default=0.95,
                        help='Рівень довіри (за замовчуванням: 0.95)')
    parser.add_argument('--rank', type=int, default=None,
                        help='Фіксований ранг; без нього ранг обирається за енергією')
    parser.add_argument('--energy', type=float, default=0.98,
                        help='Поріг накопиченої енергії для вибору рангу (за замовчуванням: 0.98)')
    parser.add_argument('--lower-floor', type=float, default=0.0,
                        help='Нижня межа для нижньої оцінки у звіті (за замовчуванням: 0)')
    parser.add_argument('--output-dir', type=str, default='results',
                        help='Директорія для збереження графіків та результатів (створюється автоматично)')
    parser.add_argument('--no-plots', action='store_true',
                        help='Не показувати графіки (тільки зберегти)')
    parser.add_argument('--verbose', action='store_true',
                        help='Докладний журнал обчислень')

    return parser.parse_args(argv)


def load_datasets(args):
    """
    Блок «Джерело даних»: повертає (train, test).

    З БД поділ робиться за закодованим роком (перший рік – навчання),
    в інших випадках – за --train-size.
    """
    if args.use_db:
        db_label = args.db_path or "data/daily_demand.db"
        print(f"   Використання бази даних: {db_label}")
        with DemandDB(db_path=args.db_path) as db:
            db.ensure_demo_data()
            train_series, test_series = db.split_by_year(boundary=1)
        source = f"SQLite БД ({db_label})"
        train = TimeSeriesDataset.from_series(train_series, name="Щоденний попит (перший рік)",
                                              source=source)
        test = TimeSeriesDataset.from_series(test_series, name="Щоденний попит (другий рік)",
                                             source=source)
        return train, test

    if args.data:
        print(f"   Завантаження з файлу: {args.data}")
        dataset = TimeSeriesDataset.from_csv(args.data, column=args.column,
                                             date_column=args.date_column,
                                             name="Користувацький часовий ряд")
    else:
        print("   Генерація тестових даних (приклад «щоденний попит»)...")
        dataset = TimeSeriesDataset.from_demand_example(n_points=args.points, seed=args.seed)
        print(f"   Seed: {args.seed}")
    return dataset.split(args.train_size)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    full_command = ' '.join(sys.argv)
    args_dict = dict(vars(args))

    print("=" * 70)
    print("ПРОГНОЗУВАННЯ ЧАСОВИХ РЯДІВ МЕТОДОМ SSA (ГУСЕНИЦЯ / CATERPILLAR)")
    print("=" * 70)
    print()

    try:
        # 1. Дані
        print("1. ЗАВАНТАЖЕННЯ ДАНИХ")
        print("-" * 40)
        train, test = load_datasets(args)
        print(f"   Точок для навчання: {len(train)}")
        print(f"   Точок для тесту: {len(test)}")
        print()

        # 2. Конфігурація рушія
        print("2. НАЛАШТУВАННЯ РУШІЯ SSA")
        print("-" * 40)
        config = SSAConfig(
            window_size=args.window,
            series_length=args.series_length,
            train_size=min(args.train_size, len(train)) if not args.use_db else len(train),
            horizon=args.horizon,
            confidence_level=args.confidence,
            rank=args.rank,
            energy_threshold=args.energy,
        )
        print(f"   - Довжина вікна (L): {config.window_size}")
        print(f"   - Місткість буфера (N): {config.series_length}")
        print(f"   - Точок для розкладання: {config.training_length}")
        print(f"   - Горизонт прогнозу: {config.horizon}")
        print(f"   - Рівень довіри: {config.confidence_level}")
        print(f"   - Ранг: {config.rank if config.rank else f'за енергією ({config.energy_threshold})'}")
        print()

        # 3. Конвеєр
        print("3. ЗАПУСК КОНВЕЄРА ПРОГНОЗУВАННЯ")
        print("-" * 40)
        pipeline = ForecastPipeline(train, test, config, output_dir=args.output_dir,
                                    lower_floor=args.lower_floor)
        results = pipeline.run(show_plots=not args.no_plots,
                               command_info={'command': full_command, 'args': args_dict})
    except SSAError as exc:
        print(f"   Помилка: {type(exc).__name__}: {exc}")
        return 1

    # 4. Резюме
    print()
    print("4. ОПИС МОДЕЛІ ТА ОЦІНКА")
    print("-" * 40)
    recurrence = results["recurrence"]
    print(f"   Вибраний ранг: {recurrence.rank}")
    print(f"   Пояснена енергія: {recurrence.basis.explained_energy:.2%}")
    print(f"   Вертикальність ν²: {recurrence.verticality:.4f}")
    print(f"   Залишкова дисперсія: {recurrence.residual_variance:.4f}")
    print(f"   Однокрокова помилка ЛРС (MSE): {recurrence.one_step_variance:.4f}")
    print("   Внесок перших компонент SSA:")
    for i, c in enumerate(recurrence.basis.contributions(10)):
        print(f"   Компонента {i + 1}: {c:.2f}%")
    stationarity = results["stationarity"]
    if stationarity is not None:
        print(f"   - Тест Дікі-Фуллера p-value: {stationarity['adf_pvalue']:.4f}")
        print(f"   - Ряд стаціонарний: {'Так' if stationarity['is_stationary'] else 'Ні'}")
    metrics = results["metrics"]
    if metrics is not None:
        print()
        print("   Метрики оцінки")
        print(f"   Середня абсолютна помилка (MAE): {metrics.mae:.3f}")
        print(f"   Корінь середньоквадратичної помилки (RMSE): {metrics.rmse:.3f}")
    print(f"   Контрольна точка: {results['paths']['checkpoint']}")

    # 5. Прогноз
    print()
    print("5. ПРОГНОЗ")
    print("-" * 40)
    for block in results["report"]:
        print(block)
        print()

    print("=" * 70)
    print("Прогнозування завершено!")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    sys.exit(main())
