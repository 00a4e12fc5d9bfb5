from .repositories import (
    DBChartRepository, DBGameRepository, DBScoreRepository, DBUserRepository,
)
from .session import engine, create_session, database_url
