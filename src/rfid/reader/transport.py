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
# USB transport for CCID readers. Command frames are carried in
# PC_to_RDR_XfrBlock messages and answered by RDR_to_PC_DataBlock
# messages, the card ATR is obtained with PC_to_RDR_IccPowerOn.
#
import re
import errno
import struct
from binascii import hexlify

import usb1 as libusb

from ..err import TransportError

import logging
log = logging.getLogger(__name__)

PC_TO_RDR_ICC_POWER_ON = 0x62
PC_TO_RDR_XFR_BLOCK = 0x6F
RDR_TO_PC_DATA_BLOCK = 0x80

# Readers this package knows how to talk to.
usb_device_map = {
    (0x072f, 0x2200): "acr122",  # ACS ACR122U
    (0x072f, 0x90cc): "acr122",  # Touchatag (ACR122U OEM)
}


class USB:
    """USB transport for a CCID reader at device address *dev_adr* on
    bus *usb_bus*. Implements the transport interface of
    :class:`rfid.reader.Reader`.

    """
    @classmethod
    def find(cls, path):
        """Return a list of (vid, pid, bus, dev) tuples for the USB devices
        that match *path*, which is either "usb", "usb:vid:pid" or
        "usb:bus:dev" with vid and pid in hex and bus and dev in decimal.
        Returns :const:`None` if *path* is not a USB path.

        """
        match = re.match(r'^usb(?::([0-9a-fA-F]{4})(?::([0-9a-fA-F]{4}))?'
                         r'|:([0-9]{1,3})(?::([0-9]{1,3}))?)?$', path)
        if match is None:
            return None

        wanted = [int(s, 16 if i < 2 else 10) if s is not None else None
                  for i, s in enumerate(match.groups())]
        log.debug("searching usb devices for vid:pid:bus:dev %r", wanted)
        log.debug("using libusb-{0}.{1}.{2}".format(*libusb.getVersion()[0:3]))

        found = []
        with libusb.USBContext() as context:
            for device in context.getDeviceList(skip_on_error=True):
                ident = (device.getVendorID(), device.getProductID(),
                         device.getBusNumber(), device.getDeviceAddress())
                if all(w is None or w == i for w, i in zip(wanted, ident)):
                    found.append(ident)
        return found


    def __init__(self, usb_bus, dev_adr, timeout=0.1):
        self.timeout = timeout
        self.context = libusb.USBContext()
        self.open(usb_bus, dev_adr)

    def __del__(self):
        self.close()
        if self.context:  # pragma: no branch
            self.context.exit()

    def open(self, usb_bus, dev_adr):
        self.usb_dev = None
        self.usb_out = None
        self.usb_inp = None
        self._sequence = 0

        devices = [d for d in self.context.getDeviceList(skip_on_error=True)
                   if (d.getBusNumber(), d.getDeviceAddress()) ==
                   (usb_bus, dev_adr)]
        if not devices:
            log.error("no device %d on bus %d", dev_adr, usb_bus)
            raise TransportError(errno.ENODEV)
        dev = devices[0]

        settings = list(dev.iterSettings())
        if not settings:
            log.error("no usb configuration settings, please replug device")
            raise TransportError(errno.ENODEV)

        # first bulk endpoint in each direction
        for endpoint in settings[0].iterEndpoints():
            attr, addr = endpoint.getAttributes(), endpoint.getAddress()
            if attr & libusb.TRANSFER_TYPE_MASK != libusb.TRANSFER_TYPE_BULK:
                continue
            if addr & libusb.ENDPOINT_DIR_MASK == libusb.ENDPOINT_IN:
                self.usb_inp = self.usb_inp or endpoint
            else:
                self.usb_out = self.usb_out or endpoint

        if not (self.usb_inp and self.usb_out):
            log.error("no bulk endpoints for read and write")
            raise TransportError(errno.ENODEV)

        try:
            self._manufacturer_name = dev.getManufacturer()
            self._product_name = dev.getProduct()
        except libusb.USBErrorIO:
            self._manufacturer_name = None
            self._product_name = None

        try:
            self.usb_dev = dev.open()
            self.usb_dev.claimInterface(0)
        except libusb.USBErrorAccess:
            raise TransportError(errno.EACCES)
        except libusb.USBErrorBusy:
            raise TransportError(errno.EBUSY)
        except libusb.USBErrorNoDevice:
            raise TransportError(errno.ENODEV)

    def close(self):
        if self.usb_dev:
            self.usb_dev.close()
        self.usb_dev = None
        self.usb_out = None
        self.usb_inp = None

    @property
    def manufacturer_name(self):
        return self._manufacturer_name

    @property
    def product_name(self):
        return self._product_name

    def read(self, timeout=0):
        if self.usb_inp is None:
            raise TransportError(errno.ENODEV)
        try:
            ep_addr = self.usb_inp.getAddress()
            frame = self.usb_dev.bulkRead(ep_addr, 300, timeout)
        except libusb.USBErrorTimeout:
            raise TransportError(errno.ETIMEDOUT)
        except libusb.USBErrorNoDevice:
            raise TransportError(errno.ENODEV)
        except libusb.USBError as error:
            log.error("%r", error)
            raise TransportError(errno.EIO)

        if len(frame) == 0:
            log.error("bulk read returned zero data")
            raise TransportError(errno.EIO)

        frame = bytearray(frame)
        log.log(logging.DEBUG-1, "<<< %s", hexlify(frame).decode())
        return frame

    def write(self, frame, timeout=0):
        if self.usb_out is None:
            raise TransportError(errno.ENODEV)
        log.log(logging.DEBUG-1, ">>> %s", hexlify(frame).decode())
        try:
            ep_addr = self.usb_out.getAddress()
            self.usb_dev.bulkWrite(ep_addr, bytes(frame), timeout)
            if len(frame) % self.usb_out.getMaxPacketSize() == 0:
                self.usb_dev.bulkWrite(ep_addr, b'', timeout)
        except libusb.USBErrorTimeout:
            raise TransportError(errno.ETIMEDOUT)
        except libusb.USBErrorNoDevice:
            raise TransportError(errno.ENODEV)
        except libusb.USBError as error:
            log.error("%r", error)
            raise TransportError(errno.EIO)

    def _exchange(self, message_type, data):
        # Send one CCID bulk-out message and return the data block
        # together with the slot status and error bytes.
        sequence, self._sequence = self._sequence, (self._sequence + 1) % 256
        frame = struct.pack("<BIBB3B", message_type, len(data), 0, sequence,
                            0, 0, 0) + bytes(data)
        self.write(bytearray(frame))
        frame = self.read(int(self.timeout * 1000))
        if len(frame) < 10:
            log.error("insufficient data for decoding ccid response")
            raise TransportError(errno.EIO)
        if frame[0] != RDR_TO_PC_DATA_BLOCK:
            log.error("expected a RDR_to_PC_DataBlock")
            raise TransportError(errno.EIO)
        if len(frame) != 10 + struct.unpack("<I", memoryview(frame)[1:5])[0]:
            log.error("RDR_to_PC_DataBlock length mismatch")
            raise TransportError(errno.EIO)
        return frame[10:], frame[7], frame[8]

    def transmit(self, frame):
        """Send a command *frame* to the reader and return the response
        frame including the status bytes.

        """
        data, status, error = self._exchange(PC_TO_RDR_XFR_BLOCK, frame)
        if status & 0xC0 == 0x40:
            log.error("command failed with slot error 0x%02x", error)
            raise TransportError(errno.EIO)
        return bytes(data)

    def get_atr(self):
        """Power on the card slot and return the answer-to-reset, or
        :const:`None` if there is no card in the field.

        """
        data, status, error = self._exchange(PC_TO_RDR_ICC_POWER_ON, b"")
        if status & 0x03 == 0x02 or status & 0xC0 == 0x40:
            log.debug("no card present (status 0x%02x)", status)
            return None
        return bytes(data)
