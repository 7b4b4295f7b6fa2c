from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./surveys.db"
    COMPANY_NAME: str = "Site Survey Proposals"
    CURRENCY: str = "EUR"

    # Ids created before the isFutureProposal flag existed carry this fragment
    PROPOSAL_ID_MARKER: str = "proposal"

    # UI saves are batched over this window, then the full snapshot is written (last write wins)
    SAVE_DEBOUNCE_MS: int = 500

    class Config:
        env_file = ".env"


settings = Settings()
