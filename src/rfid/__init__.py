# -*- coding: latin-1 -*-
# -----------------------------------------------------------------------------
# Copyright 2009, 2017 Stephen Tiedemann <stephen.tiedemann@gmail.com>
#
# Licensed under the EUPL, Version 1.1 or - as soon they
# will be approved by the European Commission - subsequent
# versions of the EUPL (the "Licence");
# You may not use this work except in compliance with the
# Licence.
# You may obtain a copy of the Licence at:
#
# https://joinup.ec.europa.eu/software/page/eupl
#
# Unless required by applicable law or agreed to in
# writing, software distributed under the Licence is
# distributed on an "AS IS" basis,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either
# express or implied.
# See the Licence for the specific language governing
# permissions and limitations under the Licence.
# -----------------------------------------------------------------------------
"""Read, write and protect MIFARE Ultralight C tags through an ACS
ACR122U contactless reader.

The package is organized in three layers that are used bottom up:

* :mod:`rfid.apdu` encodes command frames and decodes their status
  trailer.
* :mod:`rfid.reader` sends frames through a transport and implements
  the reader specific commands, see :class:`rfid.reader.acr122.ACR122U`.
* :mod:`rfid.tag` models the tag memory on top of a reader, see
  :class:`rfid.tag.ultralight_c.MifareUltralightC`.

"""
from . import err                                                  # noqa: F401
from . import util                                                 # noqa: F401
from . import apdu                                                 # noqa: F401
from . import reader                                               # noqa: F401
from . import tag                                                  # noqa: F401
from .err import Error, ValidationError, TransportError            # noqa: F401
from .err import ProtocolError, StatusError, TagError              # noqa: F401
from .err import ManufacturerError, ChecksumError                  # noqa: F401
from .err import AuthenticationError, StateError                   # noqa: F401

import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
logging.getLogger(__name__).setLevel(logging.INFO)

# METADATA ####################################################################

__version__ = "0.3.0"

__title__ = "rfidpy"
__description__ = "Python module for ACR122U readers and Ultralight C tags."
__uri__ = "https://github.com/rfidpy/rfidpy"

__author__ = "Stephen Tiedemann"
__email__ = "stephen.tiedemann@gmail.com"

__license__ = "EUPL"
__copyright__ = "Copyright (c) 2009, 2019 Stephen Tiedemann"

###############################################################################
