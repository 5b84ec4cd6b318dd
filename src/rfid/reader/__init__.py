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
"""The reader base class sends command frames through a transport and
tracks what the integration layer reports about the reader and card
presence.

A transport is any object with the two methods

* ``transmit(frame)`` that sends one command frame and returns the
  complete response frame, or raises :exc:`~rfid.err.TransportError`,
* ``get_atr()`` that returns the answer-to-reset of the card in the
  field or :const:`None` if there is no card session.

:class:`rfid.reader.transport.USB` is such a transport for readers
attached via USB. ::

    import rfid.reader.transport
    from rfid.reader.acr122 import ACR122U

    transport = rfid.reader.transport.USB(bus, dev)
    reader = ACR122U(transport)
    print(reader.get_firmware_version())

"""
import itertools
from binascii import hexlify

from .. import apdu
from ..err import StateError

import logging
log = logging.getLogger(__name__)

DISCONNECTED = "disconnected"
READER_CONNECTED = "reader-connected"
CARD_PRESENT = "card-present"
AUTHENTICATED = "authenticated"

EVENT_READER_CONNECTED = "reader-connected"
EVENT_READER_DISCONNECTED = "reader-disconnected"
EVENT_CARD_PRESENT = "card-present"
EVENT_CARD_ABSENT = "card-absent"
EVENT_AUTHENTICATED = "authenticated"
EVENT_AUTHENTICATION_FAILED = "authentication-failed"

EVENTS = (
    EVENT_READER_CONNECTED, EVENT_READER_DISCONNECTED,
    EVENT_CARD_PRESENT, EVENT_CARD_ABSENT,
    EVENT_AUTHENTICATED, EVENT_AUTHENTICATION_FAILED,
)

# (state, event) -> next state
TRANSITIONS = {
    (DISCONNECTED, EVENT_READER_CONNECTED): READER_CONNECTED,
    (READER_CONNECTED, EVENT_READER_DISCONNECTED): DISCONNECTED,
    (READER_CONNECTED, EVENT_CARD_PRESENT): CARD_PRESENT,
    (CARD_PRESENT, EVENT_CARD_ABSENT): READER_CONNECTED,
    (CARD_PRESENT, EVENT_READER_DISCONNECTED): DISCONNECTED,
    (CARD_PRESENT, EVENT_AUTHENTICATED): AUTHENTICATED,
    (CARD_PRESENT, EVENT_AUTHENTICATION_FAILED): CARD_PRESENT,
    (AUTHENTICATED, EVENT_AUTHENTICATED): AUTHENTICATED,
    (AUTHENTICATED, EVENT_AUTHENTICATION_FAILED): CARD_PRESENT,
    (AUTHENTICATED, EVENT_CARD_ABSENT): READER_CONNECTED,
    (AUTHENTICATED, EVENT_READER_DISCONNECTED): DISCONNECTED,
}


class Reader:
    """Base class for contactless readers.

    Hardware events are reported with :meth:`notify` and move the
    reader session through the states :const:`DISCONNECTED`,
    :const:`READER_CONNECTED`, :const:`CARD_PRESENT` and
    :const:`AUTHENTICATED`. Interested parties register with
    :meth:`subscribe` and keep the returned token to
    :meth:`unsubscribe` later.

    The reader is not thread safe. All operations on one reader must
    be serialized by the caller.

    """
    def __init__(self, transport):
        self.transport = transport
        self._state = DISCONNECTED
        self._subscribers = dict((event, {}) for event in EVENTS)
        self._tokens = itertools.count(1)

    def __str__(self):
        return "{0} in state {1!r}".format(type(self).__name__, self.state)

    @property
    def state(self):
        """The current session state."""
        return self._state

    @property
    def is_connected(self):
        return self._state != DISCONNECTED

    @property
    def is_card_present(self):
        return self._state in (CARD_PRESENT, AUTHENTICATED)

    @property
    def is_authenticated(self):
        return self._state == AUTHENTICATED

    def subscribe(self, event, callback):
        """Register *callback* to be called without arguments whenever
        *event* happens. Returns a token for :meth:`unsubscribe`.

        """
        if event not in self._subscribers:
            raise ValueError("unknown event {0!r}".format(event))
        token = next(self._tokens)
        self._subscribers[event][token] = callback
        return token

    def unsubscribe(self, token):
        """Remove the registration identified by *token*. Returns
        :const:`True` if the token was registered.

        """
        for subscribers in self._subscribers.values():
            if subscribers.pop(token, None) is not None:
                return True
        return False

    def notify(self, event):
        """Report a session *event*. Raises :exc:`~rfid.err.StateError`
        if the event is not possible in the current state.

        """
        try:
            state = TRANSITIONS[(self._state, event)]
        except KeyError:
            raise StateError("event {0!r} is invalid in state {1!r}".format(
                event, self._state))

        log.debug("%s: %s -> %s", event, self._state, state)
        card_was_present = self.is_card_present
        self._state = state

        if event == EVENT_READER_DISCONNECTED and card_was_present:
            self._emit(EVENT_CARD_ABSENT)
        self._emit(event)

    def _emit(self, event):
        for callback in list(self._subscribers[event].values()):
            callback()

    def transmit_raw(self, frame):
        """Send a command *frame* and return the response frame without
        any interpretation.

        """
        log.log(logging.DEBUG-1, ">> %s", hexlify(frame).decode())
        frame = bytearray(self.transport.transmit(bytes(frame)))
        log.log(logging.DEBUG-1, "<< %s", hexlify(frame).decode())
        return frame

    def transmit_apdu(self, header, data=None, le=None):
        """Send a command built from *header*, payload *data* and expected
        response length *le*. Returns the
        :class:`~rfid.apdu.CommandResponse` or raises
        :exc:`~rfid.err.StatusError` if the command failed.

        """
        return apdu.decode(self.transmit_raw(apdu.encode(header, data, le)))

    def get_atr(self):
        """Return the answer-to-reset of the card or :const:`None`."""
        atr = self.transport.get_atr()
        return bytes(atr) if atr is not None else None
