from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_url: str
    log_level: str
    input_path: str
    output_dir: str
    batch_size: int
    csv_delimiter: str
    csv_encoding: str


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "contract-batch"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./contracts.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        input_path=os.getenv("INPUT_PATH", "./data/input/contracts.csv"),
        output_dir=os.getenv("OUTPUT_DIR", "./outputs"),
        batch_size=int(os.getenv("BATCH_SIZE") or "1000"),
        csv_delimiter=os.getenv("CSV_DELIMITER", ","),
        csv_encoding=os.getenv("CSV_ENCODING", "utf-8-sig"),
    )
