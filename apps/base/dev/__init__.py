""" This module contains code, mostly CLI tasks specific to development,
    such as for generating fake data.
"""

from . import tasks  # noqa
