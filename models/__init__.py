from .coin import Coin
from .daily_metric import DailyMetric
from .liquidity_overview import LiquidityOverview
from .trending_coin import TrendingCoin
from .user_favorite import UserFavorite
from .user import User
