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
from binascii import hexlify

from . import MANUFACTURER_NXP
from ..err import ValidationError, ProtocolError, StatusError
from ..err import ManufacturerError, ChecksumError
from ..util import validate_range, validate_bytes, pagedump

import logging
log = logging.getLogger(__name__)


class AuthLock:
    """Access restriction for memory from the AUTH0 block onwards, stored
    in the first byte of AUTH1."""
    WRITE = 0x01
    READ_WRITE = 0x00

    @classmethod
    def from_byte(cls, value):
        if value not in (cls.WRITE, cls.READ_WRITE):
            raise ProtocolError("invalid auth lock value 0x{0:02X}".format(
                value))
        return value


class AuthConfig:
    """Authentication policy of the tag: protected memory starts at
    *starting_block* and *lock* is an :class:`AuthLock` value."""

    def __init__(self, starting_block, lock):
        self.starting_block = starting_block
        self.lock = lock

    def __eq__(self, other):
        return (isinstance(other, AuthConfig) and
                (self.starting_block, self.lock) ==
                (other.starting_block, other.lock))

    def __repr__(self):
        lock = "WRITE" if self.lock == AuthLock.WRITE else "READ_WRITE"
        return "AuthConfig(starting_block=0x{0:02X}, lock=AuthLock.{1})" \
            .format(self.starting_block, lock)


class MifareUltralightC:
    """MIFARE Ultralight C (MF01CU2) memory accessed through a *reader*,
    normally an :class:`~rfid.reader.acr122.ACR122U`.

    The tag memory is 48 blocks of 4 byte:

    ===========  ====================================
    block        content
    ===========  ====================================
    0x00..0x02   serial number (UID and check bytes)
    0x03         one time programmable
    0x04..0x27   user data
    0x28..0x29   lock bytes and 16-bit counter
    0x2A..0x2B   authentication configuration
    0x2C..0x2F   3DES authentication key (write only)
    ===========  ====================================

    All address and length arguments are checked before anything is
    sent to the reader and violations raise
    :exc:`~rfid.err.ValidationError`. Multi-block writes are not
    atomic. If a write fails midway the blocks before it keep their
    new content.

    """
    BLOCK_SIZE = 4
    MEMORY_ADDRESS_START = 0x00
    MEMORY_ADDRESS_END = 0x2F
    MAX_READ_LENGTH = BLOCK_SIZE * 4
    SERIAL_NUMBER_ADDRESS_START = 0x00
    SERIAL_NUMBER_ADDRESS_END = 0x02
    OTP_ADDRESS = 0x03
    DATA_ADDRESS_START = 0x04
    DATA_ADDRESS_END = 0x27
    AUTH_CONFIG_ADDRESS_START = 0x2A
    AUTH_CONFIG_ADDRESS_END = 0x2B
    AUTH_KEY_ADDRESS_START = 0x2C
    AUTH_KEY_ADDRESS_END = 0x2F

    def __init__(self, reader):
        self.reader = reader
        self._product = "Mifare Ultralight C (MF01CU2)"

    def __str__(self):
        return self._product

    @property
    def product(self):
        return self._product

    def read_data(self, block, length=BLOCK_SIZE):
        """Read up to 16 bytes of *length* from *block* anywhere in tag
        memory."""
        if not 0 <= length <= self.MAX_READ_LENGTH:
            raise ValidationError(
                "invalid length {0}, must be within 0 and {1}".format(
                    length, self.MAX_READ_LENGTH))
        validate_range(block, length, self.MEMORY_ADDRESS_START,
                       self.MEMORY_ADDRESS_END, self.BLOCK_SIZE)
        return self.reader.read_block(block, length)

    def write_data(self, block, data):
        """Write one block of 4 *data* bytes into the user data area."""
        validate_range(block, self.BLOCK_SIZE, self.DATA_ADDRESS_START,
                       self.DATA_ADDRESS_END, self.BLOCK_SIZE)
        if len(data) != self.BLOCK_SIZE:
            raise ValidationError(
                "invalid data length {0}, must be {1}".format(
                    len(data), self.BLOCK_SIZE))
        data = validate_bytes(data)
        self.reader.write_block(block, data)

    def read_long_data(self, block, length=BLOCK_SIZE):
        """Read *length* bytes from the user data area starting at
        *block*, using as many reads as needed."""
        if length < 0:
            raise ValidationError("invalid length {0}".format(length))
        validate_range(block, length, self.DATA_ADDRESS_START,
                       self.DATA_ADDRESS_END, self.BLOCK_SIZE)

        data = bytearray()
        for offset in range(0, length, self.MAX_READ_LENGTH):
            size = min(length - offset, self.MAX_READ_LENGTH)
            data += self.read_data(block + offset // self.BLOCK_SIZE, size)
        return bytes(data)

    def write_long_data(self, block, data):
        """Write *data*, a multiple of 4 bytes, into the user data area
        starting at *block*, one block after the other."""
        if len(data) % self.BLOCK_SIZE != 0:
            raise ValidationError(
                "invalid data length {0}, must be a multiple of {1}".format(
                    len(data), self.BLOCK_SIZE))
        validate_range(block, len(data), self.DATA_ADDRESS_START,
                       self.DATA_ADDRESS_END, self.BLOCK_SIZE)
        data = validate_bytes(data)

        for offset in range(0, len(data), self.BLOCK_SIZE):
            self.write_data(block + offset // self.BLOCK_SIZE,
                            data[offset:offset+self.BLOCK_SIZE])

    def authenticate(self, key):
        """Authenticate with the 16 byte 3DES *key*. Returns :const:`True`
        or raises :exc:`~rfid.err.AuthenticationError`.

        """
        if len(key) != 16:
            raise ValidationError("key must be 16 bytes, got {0}".format(
                len(key)))
        key = validate_bytes(key)
        return self.reader.authenticate_3des(key)

    def get_uid(self):
        """Read and verify the 7 byte unique identifier.

        The serial number blocks hold UID0..UID2, BCC0, UID3..UID6 and
        BCC1. UID0 must be the NXP manufacturer code and the check
        bytes must be BCC0 = 0x88 ^ UID0 ^ UID1 ^ UID2 and
        BCC1 = UID3 ^ UID4 ^ UID5 ^ UID6.

        """
        data = self.reader.read_block(self.SERIAL_NUMBER_ADDRESS_START, 9)
        if len(data) < 9:
            raise ProtocolError(
                "serial number must be 9 bytes, got {0}".format(len(data)))

        uid = bytes(data[0:3] + data[4:8])
        bcc0, bcc1 = data[3], data[8]
        log.debug("serial number %s", hexlify(bytes(data[0:9])).decode())

        if uid[0] != MANUFACTURER_NXP:
            raise ManufacturerError(
                "expected manufacturer 0x{0:02X}, got 0x{1:02X}".format(
                    MANUFACTURER_NXP, uid[0]))

        if bcc0 != 0x88 ^ uid[0] ^ uid[1] ^ uid[2]:
            raise ChecksumError(
                "invalid BCC0 0x{0:02X}, expected 0x{1:02X}".format(
                    bcc0, 0x88 ^ uid[0] ^ uid[1] ^ uid[2]))

        if bcc1 != uid[3] ^ uid[4] ^ uid[5] ^ uid[6]:
            raise ChecksumError(
                "invalid BCC1 0x{0:02X}, expected 0x{1:02X}".format(
                    bcc1, uid[3] ^ uid[4] ^ uid[5] ^ uid[6]))

        return uid

    def get_auth_config(self):
        """Read the :class:`AuthConfig` from the AUTH0 and AUTH1 blocks."""
        data = self.reader.read_block(self.AUTH_CONFIG_ADDRESS_START,
                                      2 * self.BLOCK_SIZE)
        if len(data) < 2 * self.BLOCK_SIZE:
            raise ProtocolError(
                "auth config must be 8 bytes, got {0}".format(len(data)))
        return AuthConfig(data[0], AuthLock.from_byte(data[4]))

    def set_auth_config(self, starting_block, lock):
        """Protect memory from *starting_block* onwards against write
        (:attr:`AuthLock.WRITE`) or read and write
        (:attr:`AuthLock.READ_WRITE`) access without authentication.

        A *starting_block* beyond the last block does not exist on this
        tag, use :const:`MEMORY_ADDRESS_END` to protect only the key.

        """
        validate_range(starting_block, self.BLOCK_SIZE, self.OTP_ADDRESS,
                       self.MEMORY_ADDRESS_END, self.BLOCK_SIZE)
        if lock not in (AuthLock.WRITE, AuthLock.READ_WRITE):
            raise ValidationError("invalid auth lock {0!r}".format(lock))

        log.debug("protect from block %d with lock %d", starting_block, lock)
        self.reader.write_block(self.AUTH_CONFIG_ADDRESS_START,
                                bytearray([starting_block, 0, 0, 0]))
        self.reader.write_block(self.AUTH_CONFIG_ADDRESS_START + 1,
                                bytearray([lock, 0, 0, 0]))

    def change_auth_key(self, key):
        """Write a new 16 byte 3DES *key*. The tag stores each 8 byte half
        of the key in reverse byte order.

        """
        if len(key) != 16:
            raise ValidationError("key must be 16 bytes, got {0}".format(
                len(key)))
        key = validate_bytes(key)

        # split the key and reverse
        key1, key2 = key[7::-1], key[15:7:-1]
        block = self.AUTH_KEY_ADDRESS_START
        self.reader.write_block(block + 0, key1[0:4])
        self.reader.write_block(block + 1, key1[4:8])
        self.reader.write_block(block + 2, key2[0:4])
        self.reader.write_block(block + 3, key2[4:8])

    def _read_or_none(self, block):
        try:
            return bytearray(self.read_data(block, self.BLOCK_SIZE))[0:4]
        except StatusError:
            return [None, None, None, None]

    def dump(self):
        """Return the readable tag memory as a list of formatted strings,
        one per block. Consecutive user data blocks of identical
        content are reduced to fewer lines and blocks that can not be
        read (for example protected by authentication) show as ``??``.
        The key blocks can never be read and are not included.

        """
        lines = list()
        header = ("UID0-UID2, BCC0", "UID3-UID6",
                  "BCC1, INT, LOCK0-LOCK1", "OTP0-OTP3")
        footer = dict(zip(range(0x28, 0x2C), (
            "LOCK2-LOCK3", "CTR0-CTR1", "AUTH0", "AUTH1")))

        for i, info in enumerate(header):
            lines.append(pagedump(i, self._read_or_none(i), info))

        this_data = last_data = None
        same_data = 0

        def dump_same_data(same_data, this_data, page):
            if same_data > 1:
                lines.append(pagedump(None, this_data))
            if same_data > 0:
                lines.append(pagedump(page, this_data))

        for i in range(self.DATA_ADDRESS_START, self.DATA_ADDRESS_END + 1):
            this_data = self._read_or_none(i)
            if this_data == last_data:
                same_data += 1
            else:
                dump_same_data(same_data, last_data, i-1)
                lines.append(pagedump(i, this_data))
                last_data = this_data
                same_data = 0
        dump_same_data(same_data, this_data, self.DATA_ADDRESS_END)

        for i in sorted(footer):
            lines.append(pagedump(i, self._read_or_none(i), footer[i]))

        return lines
