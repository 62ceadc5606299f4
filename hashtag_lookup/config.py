from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Remote endpoints
    hashtag_base_url: str = "http://localhost:3000"
    hashtag_search_path: str = "/hashtags/search.json"
    hashtag_lookup_path: str = "/hashtags"
    hashtag_api_key: str = ""
    hashtag_api_username: str = ""
    hashtag_http_timeout_seconds: float = 30.0

    # Search pipeline
    hashtag_input_delay_ms: int = 250
    hashtag_search_timeout_ms: int = 5000
    hashtag_cache_ttl_seconds: int = 30
    hashtag_testing: bool = False

    # Autocomplete
    hashtag_trigger_char: str = "#"
    hashtag_type_order: str = "category,tag"  # priority order, comma separated
    enable_experimental_hashtag_autocomplete: bool = True

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def type_order(self) -> list[str]:
        return [t.strip() for t in self.hashtag_type_order.split(",") if t.strip()]


settings = Settings()
