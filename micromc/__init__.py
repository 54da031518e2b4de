# -*- coding: utf-8 -*-
""" Microcanonical Monte Carlo samplers with constrained momentum dynamics. """

__license__ = 'MIT'

import micromc.acceptance
import micromc.autodiff
import micromc.config
import micromc.events
import micromc.integrators
import micromc.refreshment
import micromc.samplers
import micromc.states
import micromc.systems
import micromc.targets
import micromc.updates
import micromc.vectors
