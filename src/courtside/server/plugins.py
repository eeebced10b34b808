from advanced_alchemy.extensions.litestar import SQLAlchemyPlugin
from litestar.plugins.pydantic import PydanticPlugin
from litestar.plugins.structlog import StructlogPlugin

from courtside.config import app as config

structlog = StructlogPlugin(config=config.log)
alchemy = SQLAlchemyPlugin(config=config.alchemy)
pydantic = PydanticPlugin(prefer_alias=True)
