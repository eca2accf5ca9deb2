# shopsim/__init__.py
from .actions import dispatch, DispatchResult
from .engine import create_initial_state, weekly_tick
from .errors import InvalidAction, InvalidOption, ShopSimError
from .models import GameSettings, GameState
