from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Slab planning
    EDGE_TRIM_MM: float = 20.0
    JOIN_CENTRE_WARNING_MM: float = 200.0
    DEFAULT_SLAB_FAMILY: str = "ENGINEERED_QUARTZ_JUMBO"

    # Rate selection: rate_20mm at or below this thickness, rate_40mm above
    THICKNESS_TIER_MM: float = 20.0
    DEFAULT_FABRICATION_CATEGORY: str = "ENGINEERED"

    # Waste factor outside this range is clamped (and logged)
    MAX_WASTE_FACTOR_PERCENT: float = 50.0

    class Config:
        env_file = ".env"
        env_prefix = "STONEQUOTE_"


settings = Settings()
