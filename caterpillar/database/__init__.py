from caterpillar.database.demand_db import DailyObservation, DemandDB, generate_demand_data

__all__ = ["DemandDB", "DailyObservation", "generate_demand_data"]
