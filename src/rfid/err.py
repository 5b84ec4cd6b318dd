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
import os
import errno


class Error(Exception):
    """Base class for all exceptions raised by the rfid package.

    - ValidationError
    - TransportError
    - ProtocolError
    - StatusError
    - TagError

      - ManufacturerError
      - ChecksumError

    - AuthenticationError
    - StateError

    """


class ValidationError(Error, ValueError):
    """An address, length or byte value precondition was violated. The
    error is always raised before anything is sent to the reader.

    """


class TransportError(Error, IOError):
    """The channel to the reader failed. The *errno* attribute holds the
    reason code, for example :const:`errno.EIO` or
    :const:`errno.ETIMEDOUT`.

    """
    def __init__(self, errno, strerror=None):
        if strerror is None:
            strerror = os.strerror(errno)
        super().__init__(errno, strerror)

    def __str__(self):
        return "rfid.TransportError: [{0}] {1}".format(
            errno.errorcode.get(self.errno, self.errno), self.strerror)


class ProtocolError(Error):
    """A response did not have the expected length or shape."""


class StatusError(Error):
    """A command frame was answered with a status other than normal
    processing (sw1 0x90). The status bytes are available as *sw1* and
    *sw2*.

    """
    def __init__(self, sw1, sw2, message=None):
        if message is None:
            message = "command failed with status {0:02X} {1:02X}".format(
                sw1, sw2)
        super().__init__(message)
        self.sw1 = sw1
        self.sw2 = sw2

    @property
    def status(self):
        """The status bytes as a tuple (sw1, sw2)."""
        return (self.sw1, self.sw2)


class TagError(Error):
    """Base class for tag data validation errors."""


class ManufacturerError(TagError):
    """The tag serial number does not start with the expected
    manufacturer code."""


class ChecksumError(TagError):
    """A block check character of the tag serial number is wrong."""


class AuthenticationError(Error):
    """The tag response in the mutual authentication did not prove
    possession of the key."""


class StateError(Error):
    """An event was reported that is not allowed in the current reader
    session state."""
