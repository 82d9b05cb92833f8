import pytest

from glmpath import (glmnet_control,
                     get_control,
                     reset_control)
from glmpath.glm import GLMControl
from glmpath.regularized_glm import RegGLMControl
from glmpath.glmnet import GLMNetControl
from glmpath.paths import FastNetControl


class TestControl(object):

    def setup_method(self):
        reset_control()

    def teardown_method(self):
        reset_control()

    def test_factory_defaults(self):
        settings = get_control()
        assert settings.epsnr == 1e-8
        assert settings.mxitnr == 25
        assert settings.fdev == 1e-5
        assert settings.devmax == 0.999
        assert settings.eps == 1e-6
        assert settings.big == 9.9e35
        assert settings.mnlam == 5
        assert settings.pmin == 1e-9
        assert settings.exmx == 250.
        assert settings.itrace == 0

    def test_changes_persist(self):
        glmnet_control(epsnr=1e-12, mxitnr=100)
        assert get_control().epsnr == 1e-12
        assert get_control().mxitnr == 100
        glmnet_control(fdev=0)
        assert get_control().epsnr == 1e-12
        assert get_control().fdev == 0

    def test_factory_reset(self):
        glmnet_control(epsnr=1e-12)
        settings = glmnet_control(factory=True)
        assert settings.epsnr == 1e-8
        assert get_control().epsnr == 1e-8

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            glmnet_control(not_a_setting=3)

    def test_returned_copy(self):
        settings = glmnet_control()
        settings.epsnr = 1
        assert get_control().epsnr == 1e-8

    @pytest.mark.parametrize('control_cls', [GLMControl,
                                             RegGLMControl,
                                             GLMNetControl,
                                             FastNetControl])
    def test_estimator_controls_read_settings(self, control_cls):
        glmnet_control(epsnr=1e-11, mxitnr=60)
        control = control_cls()
        assert control.epsnr == 1e-11
        assert control.mxitnr == 60

        # explicit values win
        control = control_cls(epsnr=1e-3)
        assert control.epsnr == 1e-3

        reset_control()
        assert control_cls().epsnr == 1e-8

    def test_path_controls(self):
        glmnet_control(fdev=0, devmax=0.5, mnlam=7, itrace=1, pmin=1e-5, exmx=50)
        control = FastNetControl()
        assert (control.fdev, control.devmax, control.mnlam, control.itrace) == (0, 0.5, 7, 1)
        assert (control.pmin, control.exmx) == (1e-5, 50)
