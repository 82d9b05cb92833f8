from .control import (glmnet_control,
                      get_control,
                      reset_control,
                      ControlSettings)
from .family import (GLMFamilySpec,
                     BinomFamilySpec,
                     GLMState)
from .base import Design
from .elnet import (ElNet,
                    ElNetControl)
from .irls import (IRLS,
                   StepHalvingWarning)
from .glm import (GLM,
                  BinomialGLM,
                  GLMControl)
from .regularized_glm import (RegGLM,
                              RegGLMControl)
from .glmnet import (GLMNet,
                     GLMNetControl,
                     CoefPath)

# fast paths

from .paths import (LogNet,
                    FishNet,
                    GaussNet,
                    FastNetControl)

from .fit import glmnet

from ._version import __version__
