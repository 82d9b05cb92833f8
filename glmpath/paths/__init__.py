# fast paths

from .fastnet import FastNetControl
from .lognet import LogNet
from .gaussnet import GaussNet
from .fishnet import FishNet
