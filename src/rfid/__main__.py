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
import rfid
import rfid.reader.transport
from rfid.reader import EVENT_READER_CONNECTED, EVENT_CARD_PRESENT
from rfid.reader.acr122 import ACR122U
from rfid.tag.ultralight_c import MifareUltralightC

import errno
import logging
import platform
import argparse
from binascii import hexlify

description = """

The rfid module reads, writes and protects MIFARE Ultralight C tags
through an ACS ACR122U contactless reader attached via USB. It is
supposed to be used within other applications, executing it as a
module will look for a reader, identify the tag in the field and
optionally print the tag memory.

"""


def main(args):
    print("This is the %s version of rfidpy run in Python %s\non %s" %
          (rfid.__version__, platform.python_version(), platform.platform()))

    logging.basicConfig()
    log_levels = (logging.WARN, logging.INFO, logging.DEBUG, logging.DEBUG-1)
    log_level = log_levels[min(args.verbose, len(log_levels) - 1)]
    logging.getLogger('rfid').setLevel(log_level)

    key = None
    if args.key is not None:
        try:
            key = bytearray.fromhex(args.key)
        except ValueError:
            print("the key %r is not a hex string" % args.key)
            return 2

    found = rfid.reader.transport.USB.find(args.path)
    if found is None:
        print("I can only work with usb paths, not %r" % args.path)
        return 2

    readers = 0
    for vid, pid, bus, dev in found:
        if (vid, pid) not in rfid.reader.transport.usb_device_map:
            continue
        path = "usb:{0:03d}:{1:03d}".format(bus, dev)
        try:
            transport = rfid.reader.transport.USB(bus, dev)
        except rfid.TransportError as error:
            if error.errno == errno.EACCES:
                print("** found %s but access is denied" % path)
            elif error.errno == errno.EBUSY:
                print("** found %s but it's already used" % path)
            else:
                print("** found %s but %s" % (path, error.strerror))
            continue

        readers += 1
        try:
            inspect(ACR122U(transport), path, key, args.dump)
        except rfid.Error as error:
            print("-- %s" % error)
        finally:
            transport.close()

    if not readers:
        print("Sorry, but I couldn't find any ACR122U reader")
        return 1
    return 0


def inspect(reader, path, key, dump):
    reader.notify(EVENT_READER_CONNECTED)
    transport = reader.transport
    print("** found %s %s at %s" % (
        transport.manufacturer_name or "ACS",
        transport.product_name or "ACR122U", path))
    print("-- firmware %s" % reader.get_firmware_version())

    atr = reader.get_atr()
    if atr is None:
        print("-- there is no card on the reader")
        return

    reader.notify(EVENT_CARD_PRESENT)
    print("-- card ATR %s" % hexlify(atr).decode())

    tag = MifareUltralightC(reader)
    print("-- %s with UID %s" % (tag, hexlify(tag.get_uid()).decode()))
    if key is not None:
        tag.authenticate(key)
        print("-- authenticated with key %s" % hexlify(key).decode())
    print("-- %r" % tag.get_auth_config())
    if dump:
        for line in tag.dump():
            print("   " + line)


parser = argparse.ArgumentParser(
    prog="python -m rfid", description=description)

parser.add_argument(
    "path", nargs="?", default="usb",
    help="usb device path, 'usb', 'usb:vid:pid' or 'usb:bus:dev'")

parser.add_argument(
    "--key", metavar="HEX",
    help="authenticate with this 16 byte key before reading the tag")

parser.add_argument(
    "--dump", action="store_true",
    help="print the tag memory")

parser.add_argument(
    "--verbose", "-v", action="count", default=0,
    help="be verbose. Multiple -v options increase the verbosity.")

if __name__ == "__main__":
    raise SystemExit(main(parser.parse_args()))
