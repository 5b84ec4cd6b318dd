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
"""Command layer for the ACS ACR122U contactless reader.

The ACR122U accepts pseudo-APDUs with class byte 0xFF. Some of them
operate the reader itself (LED, buzzer, firmware version, polling
parameters, key storage), others are relayed to the tag. Commands for
the embedded PN532 chip are tunneled with the *direct transmit*
pseudo-APDU ``FF 00 00 00 Lc <PN532 frame>``.

==========================  =================  =======================
function                    header             payload / Le
==========================  =================  =======================
load_key                    FF 82 00 slot      key
authenticate_block          FF 86 00 00        01 00 block type slot
read_block                  FF B0 00 block     Le = length
write_block                 FF D6 00 block     4 data bytes
get_firmware_version        FF 00 48 00        Le = 0
set_buzzer_on_detection     FF 00 52 FF|00     Le = 0
get_picc_operating_param    FF 00 50 00        Le = 0
set_picc_operating_param    FF 00 51 param     Le = 0
control_led_buzzer          FF 00 40 ctrl      T1 T2 reps buzzer
transmit_direct             FF 00 00 00        PN532 frame
==========================  =================  =======================

"""
import os
from binascii import hexlify
from pyDes import triple_des, CBC

from . import Reader, EVENT_CARD_PRESENT
from . import EVENT_AUTHENTICATED, EVENT_AUTHENTICATION_FAILED
from ..apdu import CommandHeader
from ..err import Error, ValidationError, ProtocolError, StatusError
from ..err import AuthenticationError, StateError
from ..util import validate_byte, validate_bytes, rotate_left

import logging
log = logging.getLogger(__name__)


class KeyType:
    """Key slot semantics for :meth:`ACR122U.authenticate_block`."""
    A = 0x60
    B = 0x61


class LedState:
    """The state of the red and green LED reported after
    :meth:`ACR122U.control_led_buzzer`."""

    def __init__(self, red, green):
        self.red = red
        self.green = green

    @classmethod
    def from_byte(cls, value):
        return cls(red=bool(value & 0x01), green=bool(value & 0x02))

    def __eq__(self, other):
        return (isinstance(other, LedState) and
                (self.red, self.green) == (other.red, other.green))

    def __repr__(self):
        return "LedState(red={0}, green={1})".format(self.red, self.green)


class PiccOperatingParameter:
    """The PICC operating parameter byte controls how the reader polls
    for cards. Bit 7 is the most significant bit.

    =====  =====================  ===========================
    bit    attribute              meaning if set
    =====  =====================  ===========================
    7      auto_picc_polling      poll for cards automatically
    6      auto_ats_generation    request ATS after activation
    5      poll_interval          250 ms (500 ms if clear)
    4      detect_felica_424k     FeliCa 424 kbps
    3      detect_felica_212k     FeliCa 212 kbps
    2      detect_topaz           Innovision Topaz
    1      detect_iso14443_type_b ISO/IEC 14443 Type B
    0      detect_iso14443_type_a ISO/IEC 14443 Type A
    =====  =====================  ===========================

    """
    POLL_250MS = 250
    POLL_500MS = 500

    _flags = (
        ("auto_picc_polling", 0x80),
        ("auto_ats_generation", 0x40),
        ("detect_felica_424k", 0x10),
        ("detect_felica_212k", 0x08),
        ("detect_topaz", 0x04),
        ("detect_iso14443_type_b", 0x02),
        ("detect_iso14443_type_a", 0x01),
    )

    def __init__(self, auto_picc_polling=True, auto_ats_generation=True,
                 poll_interval=POLL_250MS, detect_felica_424k=True,
                 detect_felica_212k=True, detect_topaz=True,
                 detect_iso14443_type_b=True, detect_iso14443_type_a=True):
        if poll_interval not in (self.POLL_250MS, self.POLL_500MS):
            raise ValidationError("poll interval must be 250 or 500 ms")
        self.auto_picc_polling = auto_picc_polling
        self.auto_ats_generation = auto_ats_generation
        self.poll_interval = poll_interval
        self.detect_felica_424k = detect_felica_424k
        self.detect_felica_212k = detect_felica_212k
        self.detect_topaz = detect_topaz
        self.detect_iso14443_type_b = detect_iso14443_type_b
        self.detect_iso14443_type_a = detect_iso14443_type_a

    @classmethod
    def from_byte(cls, value):
        kwargs = dict((name, bool(value & mask)) for name, mask in cls._flags)
        kwargs["poll_interval"] = (
            cls.POLL_250MS if value & 0x20 else cls.POLL_500MS)
        return cls(**kwargs)

    def to_byte(self):
        value = 0x20 if self.poll_interval == self.POLL_250MS else 0x00
        for name, mask in self._flags:
            if getattr(self, name):
                value |= mask
        return value

    def __eq__(self, other):
        return (isinstance(other, PiccOperatingParameter) and
                self.to_byte() == other.to_byte())

    def __repr__(self):
        return "PiccOperatingParameter(0x{0:02X})".format(self.to_byte())


class MutualAuthentication:
    """One run of the MIFARE Ultralight C 3DES mutual authentication.

    The handshake proves to both sides that they hold the same 16 byte
    key. The reader sends its challenge A only encrypted and answers
    the tag challenge B rotated by one byte, the tag must answer with A
    rotated by one byte. States advance strictly in the order
    :const:`INIT`, :const:`CHALLENGE_EXCHANGED`, :const:`RESPONSE_SENT`
    and end in :const:`VERIFIED` or :const:`FAILED`.

    The cipher is two-key triple DES (K1, K2, K1) in CBC mode without
    padding. Every encryption and decryption continues the chain from
    the previous ciphertext block.

    """
    INIT = "init"
    CHALLENGE_EXCHANGED = "challenge-exchanged"
    RESPONSE_SENT = "response-sent"
    VERIFIED = "verified"
    FAILED = "failed"

    AUTHENTICATE = bytearray([0xD4, 0x42, 0x1A, 0x00])
    ADDITIONAL_FRAME = bytearray([0xD4, 0x42, 0xAF])
    RESPONSE_LENGTH = 12

    def __init__(self, reader, key):
        self.reader = reader
        self.state = self.INIT
        self._key = bytes(key)
        self._rnd_a = None
        self._ek_rnd_b = None
        self._ek_rnd_ab = None
        self._ek_rnd_a = None

    def run(self):
        """Execute the handshake. Returns :const:`True` if the tag was
        verified, raises :exc:`~rfid.err.AuthenticationError` or
        :exc:`~rfid.err.ProtocolError` otherwise.

        """
        try:
            self._exchange_challenge()
            self._send_response()
            self._verify()
        except Error:
            self.state = self.FAILED
            raise
        finally:
            self._rnd_a = self._ek_rnd_b = None
            self._ek_rnd_ab = self._ek_rnd_a = None
        return True

    def _transceive(self, frame):
        data = self.reader.transmit_direct(frame)
        if len(data) != self.RESPONSE_LENGTH:
            log.debug("invalid response %s", hexlify(data).decode())
            raise ProtocolError(
                "authentication {0}: expected {1} byte response, got {2}"
                .format(self.state, self.RESPONSE_LENGTH, len(data)))
        return data

    def _expect(self, state):
        if self.state != state:
            raise StateError("authentication step requires state {0!r}, "
                             "not {1!r}".format(state, self.state))

    def _cipher(self, iv):
        return triple_des(self._key, CBC, bytes(iv))

    def _exchange_challenge(self):
        self._expect(self.INIT)
        self._rnd_a = os.urandom(8)
        rsp = self._transceive(self.AUTHENTICATE)
        self._ek_rnd_b = bytes(rsp[4:12])
        log.debug("received challenge")
        log.debug("ek(b) = %s", hexlify(self._ek_rnd_b).decode())
        self.state = self.CHALLENGE_EXCHANGED

    def _send_response(self):
        self._expect(self.CHALLENGE_EXCHANGED)
        rnd_b = self._cipher(8 * b"\0").decrypt(self._ek_rnd_b)
        rnd_b_rotated = bytes(rotate_left(rnd_b, 1))
        ek_rnd_ab = self._cipher(self._ek_rnd_b).encrypt(
            self._rnd_a + rnd_b_rotated)
        self._ek_rnd_ab = ek_rnd_ab[0:16]
        log.debug("sending response")
        log.debug("ek(a+b') = %s", hexlify(self._ek_rnd_ab).decode())
        rsp = self._transceive(self.ADDITIONAL_FRAME + self._ek_rnd_ab)
        self._ek_rnd_a = bytes(rsp[4:12])
        self.state = self.RESPONSE_SENT

    def _verify(self):
        self._expect(self.RESPONSE_SENT)
        log.debug("received confirmation")
        log.debug("ek(a') = %s", hexlify(self._ek_rnd_a).decode())
        rnd_a = self._cipher(self._ek_rnd_ab[8:16]).decrypt(self._ek_rnd_a)
        if rnd_a != bytes(rotate_left(self._rnd_a, 1)):
            raise AuthenticationError(
                "tag did not return the rotated reader challenge")
        self.state = self.VERIFIED


class ACR122U(Reader):
    """Command layer for the ACR122U reader on top of a *transport*.

    With *disable_green_led* the green LED is switched off (and the red
    LED on) whenever a card becomes present, with *disable_buzzer* the
    buzzer on card detection is disabled at the same time.

    """
    KEY_SLOT = 0x00

    def __init__(self, transport, disable_green_led=False,
                 disable_buzzer=False):
        super().__init__(transport)
        self.disable_green_led = disable_green_led
        self.disable_buzzer = disable_buzzer
        if disable_green_led or disable_buzzer:
            self.subscribe(EVENT_CARD_PRESENT, self._on_card_present)

    def _on_card_present(self):
        if self.disable_green_led:
            self.control_led_buzzer(
                red_initial=False, green_initial=False,
                red_final=True, green_final=False,
                t1_duration=0, t2_duration=0, repetitions=0)
        if self.disable_buzzer:
            self.set_buzzer_on_detection(False)

    def authenticate(self, block, key):
        """Authenticate *block* of a MIFARE Classic card with the 6 byte
        *key* loaded as key type A into the reader's key slot 0.

        """
        if len(key) != 6:
            raise ValidationError("key must be 6 bytes, got {0}".format(
                len(key)))
        key = validate_bytes(key)
        self.load_key(key, self.KEY_SLOT)
        self.authenticate_block(block, KeyType.A, self.KEY_SLOT)

    def authenticate_3des(self, key):
        """Run the MIFARE Ultralight C mutual authentication with the 16
        byte *key*, see :class:`MutualAuthentication`. Returns
        :const:`True` or raises :exc:`~rfid.err.AuthenticationError`
        and :exc:`~rfid.err.ProtocolError`.

        """
        if len(key) != 16:
            raise ValidationError("key must be 16 bytes, got {0}".format(
                len(key)))
        key = validate_bytes(key)
        log.debug("authenticate with key %s", hexlify(key).decode())
        try:
            MutualAuthentication(self, key).run()
        except Error:
            if self.is_card_present:
                self.notify(EVENT_AUTHENTICATION_FAILED)
            raise
        if self.is_card_present:
            self.notify(EVENT_AUTHENTICATED)
        return True

    def load_key(self, key, slot):
        """Store *key* in the volatile key *slot* of the reader."""
        validate_byte("slot", slot)
        log.debug("load key into slot %d", slot)
        header = CommandHeader(0xFF, 0x82, 0x00, slot)
        self._command("load key into slot {0}".format(slot), header, data=key)

    def authenticate_block(self, block, key_type, slot):
        """Authenticate *block* with the key in *slot*, used as
        :attr:`KeyType.A` or :attr:`KeyType.B` according to *key_type*.

        """
        if key_type not in (KeyType.A, KeyType.B):
            raise ValidationError("invalid key type {0!r}".format(key_type))
        validate_byte("block", block)
        validate_byte("slot", slot)
        log.debug("authenticate block %d with key slot %d", block, slot)
        data = bytearray([0x01, 0x00, block, key_type, slot])
        header = CommandHeader(0xFF, 0x86, 0x00, 0x00)
        self._command("authenticate block 0x{0:02X}".format(block), header,
                      data=data)

    def read_block(self, block, length):
        """Read *length* bytes starting at *block*."""
        validate_byte("block", block)
        validate_byte("length", length)
        log.debug("read %d bytes from block %d", length, block)
        header = CommandHeader(0xFF, 0xB0, 0x00, block)
        operation = "read {0} bytes from block 0x{1:02X}".format(length, block)
        return self._command(operation, header, le=length).data

    def write_block(self, block, data):
        """Write four bytes of *data* to *block*."""
        if len(data) != 4:
            raise ValidationError("data must be 4 bytes, got {0}".format(
                len(data)))
        validate_byte("block", block)
        log.debug("write %s to block %d", hexlify(bytes(data)).decode(), block)
        header = CommandHeader(0xFF, 0xD6, 0x00, block)
        self._command("write block 0x{0:02X}".format(block), header, data=data)

    def get_firmware_version(self):
        """Return the firmware version string, for example "ACR122U207".
        The reader answers this command with the bare string and no
        status bytes.

        """
        frame = bytes(CommandHeader(0xFF, 0x00, 0x48, 0x00)) + b"\x00"
        return self.transmit_raw(frame).decode("ascii")

    def set_buzzer_on_detection(self, enabled):
        """Enable or disable the buzzer sound on card detection."""
        header = CommandHeader(0xFF, 0x00, 0x52, 0xFF if enabled else 0x00)
        self.transmit_apdu(header, le=0x00)

    def get_picc_operating_parameter(self):
        """Return the current :class:`PiccOperatingParameter`."""
        header = CommandHeader(0xFF, 0x00, 0x50, 0x00)
        rsp = self.transmit_apdu(header, le=0x00)
        return PiccOperatingParameter.from_byte(rsp.sw2)

    def set_picc_operating_parameter(self, parameter):
        """Set the :class:`PiccOperatingParameter` and return the value
        confirmed by the reader."""
        header = CommandHeader(0xFF, 0x00, 0x51, parameter.to_byte())
        rsp = self.transmit_apdu(header, le=0x00)
        return PiccOperatingParameter.from_byte(rsp.sw2)

    def control_led_buzzer(self, red_initial, green_initial, t1_duration,
                           t2_duration, repetitions, red_final=None,
                           green_final=None, red_blinking=False,
                           green_blinking=False, buzzer_t1=False,
                           buzzer_t2=False):
        """Control the red and green LED and the buzzer.

        The LEDs start in the *red_initial* and *green_initial* state
        and, if *red_blinking* or *green_blinking*, toggle between the
        T1 and T2 phase of *t1_duration* and *t2_duration* milliseconds
        for *repetitions* cycles. The buzzer sounds during T1 and T2 if
        *buzzer_t1* and *buzzer_t2*. A *red_final* or *green_final*
        state of :const:`None` leaves the LED unchanged afterwards.

        The durations must be multiples of 100 ms up to 25500 ms and
        *repetitions* at most 255.

        LED state control byte (bit 7 is the most significant bit):

        ===  ==========================
        bit  meaning
        ===  ==========================
        7    green blinking
        6    red blinking
        5    green initial state
        4    red initial state
        3    green final state is set
        2    red final state is set
        1    green final state
        0    red final state
        ===  ==========================

        Buzzer control byte: bit 1 buzzer during T2, bit 0 buzzer
        during T1.

        Returns the :class:`LedState` reported by the reader.

        """
        for name, value in (("t1_duration", t1_duration),
                            ("t2_duration", t2_duration)):
            if not 0 <= value <= 25500:
                raise ValidationError(
                    "invalid {0} {1}, must be within 0 and 25500 ms"
                    .format(name, value))
            if value % 100 != 0:
                raise ValidationError(
                    "invalid {0} {1}, must be a multiple of 100 ms"
                    .format(name, value))
        if not 0 <= repetitions <= 255:
            raise ValidationError(
                "invalid repetitions {0}, must be within 0 and 255"
                .format(repetitions))

        led_control = (
            (0x80 if green_blinking else 0) |
            (0x40 if red_blinking else 0) |
            (0x20 if green_initial else 0) |
            (0x10 if red_initial else 0) |
            (0x08 if green_final is not None else 0) |
            (0x04 if red_final is not None else 0) |
            (0x02 if green_final else 0) |
            (0x01 if red_final else 0))
        buzzer_control = (
            (0x02 if buzzer_t2 else 0) |
            (0x01 if buzzer_t1 else 0))

        data = bytearray([t1_duration // 100, t2_duration // 100,
                          repetitions, buzzer_control])
        header = CommandHeader(0xFF, 0x00, 0x40, led_control)
        rsp = self.transmit_apdu(header, data=data)
        return LedState.from_byte(rsp.sw2)

    def transmit_direct(self, data):
        """Relay *data* to the PN532 chip and return its answer."""
        header = CommandHeader(0xFF, 0x00, 0x00, 0x00)
        return self._command("direct transmit", header, data=data).data

    def _command(self, operation, header, data=None, le=None):
        try:
            return self.transmit_apdu(header, data, le)
        except StatusError as error:
            raise StatusError(error.sw1, error.sw2, (
                "{0} failed with status {1:02X} {2:02X}".format(
                    operation, error.sw1, error.sw2))) from None
