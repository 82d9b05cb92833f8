import logging
import warnings

import numpy as np
from copy import deepcopy

from sklearn.exceptions import ConvergenceWarning


class StepHalvingWarning(RuntimeWarning):
    """
    The unit Newton step was rejected and the step size halved.
    """


def quasi_newton_step(regularizer,
                      family,
                      design,
                      y,
                      offset,
                      weights,
                      state,
                      objective,
                      control):
    """
    Take one (regularized) Newton step, halving it if needed.

    The full step proposed by `regularizer.newton_step` is checked in
    turn for a finite objective, for a valid linear predictor and mean,
    and for a non-increasing objective. A failed check moves the new
    state halfway back toward `state`, at most `control.mxitnr` times
    per check.

    Returns
    -------
    state : GLMState
        Accepted state, or the incoming `state` if the step could not
        be rescued.
    boundary : bool
        Was the step truncated because it left the domain of the family?
    halved : bool
        Was the step size halved at all?
    newton_weights : np.ndarray
        Working weights used for the step.
    rescued : bool
        False if halving could not produce an acceptable state.
    """

    oldstate = deepcopy(state)

    pseudo_response, newton_weights = family.get_response_and_weights(state,
                                                                      y,
                                                                      offset,
                                                                      weights)

    state = regularizer.newton_step(design,
                                    pseudo_response,
                                    newton_weights,
                                    state)

    state.update(design,
                 family,
                 offset,
                 objective)

    boundary = False
    halved = False

    def finite_objective(state):
        return np.isfinite(state.obj_val) and state.obj_val <= control.big

    def valid(state):
        return family.valid_link(state.link_parameter) and family.valid_mean(state.mu)

    def decreased_obj(state):
        return state.obj_val <= oldstate.obj_val + 1e-7

    # (check, sets boundary, message)

    for test, at_boundary, msg in [(finite_objective,
                                    True,
                                    "Non finite objective function! Step size truncated due to divergence."),
                                   (valid,
                                    True,
                                    "Invalid eta/mu! Step size truncated: out of bounds."),
                                   (decreased_obj,
                                    False,
                                    "Objective did not decrease! Step size halved.")]:

        if test(state):
            continue

        if control.logging: logging.debug(msg)
        regularizer.check_state(oldstate)

        halved = True
        boundary = boundary or at_boundary

        ii = 0
        while not test(state):
            if ii >= control.mxitnr:
                if control.logging: logging.debug(f'{msg} Cannot correct step size after {ii} halvings, keeping previous state.')
                return oldstate, boundary, halved, newton_weights, False
            ii += 1
            state = regularizer.half_step(state,
                                          oldstate)
            state.update(design,
                         family,
                         offset,
                         objective)

    if control.logging: logging.debug(f'old value: {oldstate.obj_val}, new value: {state.obj_val}')

    return state, boundary, halved, newton_weights, True


def IRLS(regularizer,
         family,
         design,
         y,
         offset,
         weights,
         state,
         objective,
         control):
    """
    Iteratively reweighted least squares with step halving.

    Stops when the relative change of the objective is below
    `control.epsnr`, after one step for a Gaussian family with identity
    link, after `control.mxitnr` iterations, or when a step cannot be
    rescued by halving. None of these is an error: the last valid
    state is returned.

    Returns
    -------
    converged : bool
    boundary : bool
        Did any step hit the boundary of the family's domain?
    halved : bool
        Was any step halved?
    state : GLMState
    newton_weights : np.ndarray
        Working weights of the last step.
    """

    converged = False
    boundary = halved = False
    rescued = True
    newton_weights = weights
    i = 0

    if control.logging:
        logging.info('Starting IRLS')
        logging.debug(f'{regularizer._debug_msg(state)}')

    for i in range(control.mxitnr):

        obj_val_old = state.obj_val

        (state,
         boundary_,
         halved_,
         newton_weights,
         rescued) = quasi_newton_step(regularizer,
                                      family,
                                      design,
                                      y,
                                      offset,
                                      weights,
                                      state,
                                      objective,
                                      control)
        boundary = boundary or boundary_
        halved = halved or halved_

        if control.logging:
            logging.debug(f'Iteration {i}, {regularizer._debug_msg(state)}')
            logging.info(f'Objective: {state.obj_val}')

        if not rescued:
            warnings.warn('IRLS: step size could not be corrected by halving; returning last valid estimate',
                          ConvergenceWarning)
            break

        # test for convergence
        if ((np.fabs(state.obj_val - obj_val_old)/(0.1 + abs(state.obj_val)) < control.epsnr) or
            family.is_gaussian):
            converged = True
            break

    if halved:
        warnings.warn('IRLS: unit Newton step rejected, step size was halved',
                      StepHalvingWarning)

    if not converged and rescued:
        warnings.warn(f'IRLS: algorithm did not converge after {control.mxitnr} iterations',
                      ConvergenceWarning)

    if control.logging:
        logging.info(f'Terminating IRLS after {i+1} iterations.')
        logging.debug(f'{regularizer._debug_msg(state)}')

    return converged, boundary, halved, state, newton_weights
