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
#
# Command frame codec for reader communication. A command frame is a
# four byte header, optionally followed by a length prefixed payload
# and an expected response length. A response frame is the response
# body followed by the two status bytes sw1 and sw2.
#
from binascii import hexlify

from .err import ProtocolError, StatusError, ValidationError
from .util import validate_byte

import logging
log = logging.getLogger(__name__)

SW1_SUCCESS = 0x90


class CommandHeader:
    """The four leading bytes of a command frame: the class byte *cla*,
    the instruction byte *ins* and the parameter bytes *p1* and *p2*.

    """
    __slots__ = ("_octets",)

    def __init__(self, cla, ins, p1, p2):
        for name, value in zip(("cla", "ins", "p1", "p2"), (cla, ins, p1, p2)):
            validate_byte(name, value)
        self._octets = bytes(bytearray([cla, ins, p1, p2]))

    cla = property(lambda self: self._octets[0])
    ins = property(lambda self: self._octets[1])
    p1 = property(lambda self: self._octets[2])
    p2 = property(lambda self: self._octets[3])

    def __bytes__(self):
        return self._octets

    def __eq__(self, other):
        return (isinstance(other, CommandHeader) and
                self._octets == other._octets)

    def __hash__(self):
        return hash(self._octets)

    def __repr__(self):
        return "CommandHeader({0})".format(
            ", ".join("0x%02X" % x for x in self._octets))


class CommandResponse:
    """A decoded response frame with the body bytes *data* and the
    status bytes *sw1* and *sw2*.

    """
    def __init__(self, data, sw1, sw2):
        self.data = bytes(data)
        self.sw1 = sw1
        self.sw2 = sw2

    @property
    def success(self):
        return self.sw1 == SW1_SUCCESS

    def check(self):
        """Raise :exc:`~rfid.err.StatusError` if the status is not normal
        processing, otherwise return the response itself.

        """
        if not self.success:
            raise StatusError(self.sw1, self.sw2)
        return self

    def __eq__(self, other):
        return (isinstance(other, CommandResponse) and
                (self.data, self.sw1, self.sw2) ==
                (other.data, other.sw1, other.sw2))

    def __repr__(self):
        return "CommandResponse(data={0}, sw1=0x{1:02X}, sw2=0x{2:02X})" \
            .format(hexlify(self.data).decode(), self.sw1, self.sw2)


def encode(header, data=None, le=None):
    """Build a command frame from *header*, the optional payload *data*
    and the optional expected response length *le*.

    """
    frame = bytearray(bytes(header))
    if data is not None:
        if len(data) > 255:
            raise ValidationError(
                "payload of {0} bytes does not fit the length byte".format(
                    len(data)))
        frame.append(len(data))
        frame.extend(bytearray(data))
    if le is not None:
        frame.append(validate_byte("le", le))
    return frame


def decode(frame, check=True):
    """Split a response *frame* into body and status bytes. With *check*
    set a status other than normal processing raises
    :exc:`~rfid.err.StatusError`.

    """
    if len(frame) < 2:
        log.debug("response %s is too short", hexlify(frame).decode())
        raise ProtocolError(
            "response must have at least 2 status bytes, got {0}"
            .format(len(frame)))
    response = CommandResponse(frame[:-2], frame[-2], frame[-1])
    return response.check() if check else response
