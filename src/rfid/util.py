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
# Validation and byte helpers shared by the reader and tag layers.
#
from .err import ValidationError


def validate_range(block, length, start, end, block_size=4):
    """Verify that the blocks touched by *length* bytes from *block*
    onwards are all within *start* and *end* (inclusive). Raises
    :exc:`~rfid.err.ValidationError` otherwise.

    """
    last = block + (length + block_size - 1) // block_size - 1
    if block < start or block > end or last > end:
        raise ValidationError(
            "block {0} with length {1}, all blocks must be within "
            "{2} and {3}".format(block, length, start, end))


def validate_byte(name, value):
    """Verify that the argument *name* has a single byte *value*."""
    if not isinstance(value, int) or not 0 <= value <= 255:
        raise ValidationError(
            "invalid {0} {1!r}, must be within 0x00 and 0xFF".format(
                name, value))
    return value


def validate_bytes(data):
    """Verify that every element of *data* is a byte value and return the
    data as a bytearray.

    """
    if isinstance(data, (bytes, bytearray)):
        return bytearray(data)
    for index, value in enumerate(data):
        if not isinstance(value, int) or not 0 <= value <= 255:
            raise ValidationError(
                "invalid data, byte {0} is {1!r} but must be within "
                "0x00 and 0xFF".format(index, value))
    return bytearray(data)


def rotate_left(data, count=1):
    if not data:
        return bytearray(data)
    count = count % len(data)
    return bytearray(data[count:] + data[:count])


def hexdump(octets, sep=""):
    return sep.join(
        ("??" if x is None else ("%02x" % x)) for x in octets)


def chrdump(octets, sep=""):
    return sep.join(
            (("{:c}".format(x) if 32 <= x <= 126 else ".")
             if x is not None
             else ".")
            for x in octets)


def pagedump(page, octets, info=None):
    info = ("|%s|" % chrdump(octets)) if info is None else ("(%s)" % info)
    page = "  * " if page is None else "{0:03X}:".format(page)
    return "{0} {1} {2}".format(page, hexdump(octets, sep=" "), info)
