# -*- coding: latin-1 -*-
import rfid
import rfid.reader.transport

import pytest
from pytest_mock import mocker  # noqa: F401
from mock import call, MagicMock
import errno

import logging
logging.basicConfig(level=logging.DEBUG-1)
logging_level = logging.getLogger().getEffectiveLevel()
logging.getLogger("rfid.reader").setLevel(logging_level)
logging.getLogger("rfid.reader.transport").setLevel(logging_level)


def HEX(s):
    return bytearray.fromhex(s)


class TestUSB:
    class Endpoint:
        def __init__(self, addr, attr, maxp=64):
            self.addr, self.attr, self.maxp = addr, attr, maxp

        def getAddress(self):
            return self.addr

        def getAttributes(self):
            return self.attr

        def getMaxPacketSize(self):
            return self.maxp

    class Settings:
        def __init__(self, endpoints):
            self.endpoints = endpoints

        def iterEndpoints(self):
            return iter(self.endpoints)

    class Device:
        def __init__(self, vid, pid, bus, dev, settings=None):
            self.vid, self.pid, self.bus, self.dev = vid, pid, bus, dev
            self.settings = settings

        def iterSettings(self):
            return iter(self.settings)

        def getVendorID(self):
            return self.vid

        def getProductID(self):
            return self.pid

        def getBusNumber(self):
            return self.bus

        def getDeviceAddress(self):
            return self.dev

        def getManufacturer(self):
            return 'ACS'

        def getProduct(self):
            return 'ACR122U PICC Interface'

        def open(self):
            libusb = rfid.reader.transport.libusb
            return MagicMock(spec=libusb.USBDeviceHandle)

    @pytest.fixture()  # noqa: F811
    def usb_context(self, mocker):
        libusb = 'rfid.reader.transport.libusb'
        return mocker.patch(libusb + '.USBContext', autospec=True)

    @pytest.mark.parametrize("path, devices, found", [
        ('tty', [], None),
        ('usb_', [], None),
        ('usb', [Device(0x072f, 0x2200, 3, 4), Device(5, 6, 7, 8)],
         [(0x072f, 0x2200, 3, 4), (5, 6, 7, 8)]),
        ('usb:072f', [Device(0x072f, 0x2200, 3, 4), Device(1, 6, 7, 8)],
         [(0x072f, 0x2200, 3, 4)]),
        ('usb:072f:90cc', [Device(0x072f, 0x2200, 3, 4),
                           Device(0x072f, 0x90cc, 7, 8)],
         [(0x072f, 0x90cc, 7, 8)]),
        ('usb:003', [Device(1, 2, 3, 4), Device(5, 6, 3, 8)],
         [(1, 2, 3, 4), (5, 6, 3, 8)]),
        ('usb:003:004', [Device(1, 2, 3, 4), Device(5, 6, 3, 8)],
         [(1, 2, 3, 4)]),
    ])
    def test_find(self, usb_context, path, devices, found):
        usb_context_enter = usb_context.return_value.__enter__
        usb_context_enter.return_value.getDeviceList.return_value = devices
        assert rfid.reader.transport.USB.find(path) == found

    def test_device_map(self):
        usb_device_map = rfid.reader.transport.usb_device_map
        assert usb_device_map[(0x072f, 0x2200)] == "acr122"
        assert usb_device_map[(0x072f, 0x90cc)] == "acr122"

    @pytest.mark.parametrize("bus, dev, settings", [
        (1, 2, []),
        (2, 1, []),
        (1, 2, [Settings([Endpoint(0x0004, 0x0001),
                          Endpoint(0x0084, 0x0002)])]),
        (1, 2, [Settings([Endpoint(0x0004, 0x0002),
                          Endpoint(0x0084, 0x0001)])]),
    ])
    def test_init_fail_attr(self, usb_context, bus, dev, settings):
        usb_context.return_value.getDeviceList.return_value = [
            self.Device(0x072f, 0x2200, bus, dev, settings)
        ]
        with pytest.raises(rfid.TransportError) as excinfo:
            rfid.reader.transport.USB(1, 2)
        assert excinfo.value.errno == errno.ENODEV

    def test_init_fail_name(self, usb_context):
        device = self.Device(0x072f, 0x2200, 1, 2, [
            self.Settings([
                self.Endpoint(0x0002, 0x0002),
                self.Endpoint(0x0082, 0x0002),
            ])
        ])
        device.getManufacturer = MagicMock()
        device.getManufacturer.side_effect = [
            rfid.reader.transport.libusb.USBErrorIO
        ]
        usb_context.return_value.getDeviceList.return_value = [device]
        usb = rfid.reader.transport.USB(1, 2)
        assert usb.manufacturer_name is None
        assert usb.product_name is None

    def test_init_fail_open(self, usb_context):
        device = self.Device(0x072f, 0x2200, 1, 2, [
            self.Settings([
                self.Endpoint(0x0002, 0x0002),
                self.Endpoint(0x0082, 0x0002),
            ])
        ])
        device.open = MagicMock()
        device.open.side_effect = [
            rfid.reader.transport.libusb.USBErrorAccess,
            rfid.reader.transport.libusb.USBErrorBusy,
            rfid.reader.transport.libusb.USBErrorNoDevice,
        ]
        usb_context.return_value.getDeviceList.return_value = [device]

        with pytest.raises(IOError) as excinfo:
            rfid.reader.transport.USB(1, 2)
        assert excinfo.value.errno == errno.EACCES

        with pytest.raises(IOError) as excinfo:
            rfid.reader.transport.USB(1, 2)
        assert excinfo.value.errno == errno.EBUSY

        with pytest.raises(IOError) as excinfo:
            rfid.reader.transport.USB(1, 2)
        assert excinfo.value.errno == errno.ENODEV

    @pytest.fixture()  # noqa: F811
    def usb(self, usb_context):
        usb_context.return_value.getDeviceList.return_value = [
            self.Device(0x072f, 0x2200, 1, 2, [
                self.Settings([
                    self.Endpoint(0x0002, 0x0002),
                    self.Endpoint(0x0082, 0x0002),
                    self.Endpoint(0x0081, 0x0003),
                ])
            ])
        ]
        usb = rfid.reader.transport.USB(1, 2)
        return usb

    def test_names(self, usb):
        assert usb.manufacturer_name == "ACS"
        assert usb.product_name == "ACR122U PICC Interface"

    def test_read(self, usb):
        usb.usb_dev.bulkRead.side_effect = [
            b'12',
            b'34',
            rfid.reader.transport.libusb.USBErrorTimeout,
            rfid.reader.transport.libusb.USBErrorNoDevice,
            rfid.reader.transport.libusb.USBError,
            b'',
        ]
        assert usb.read() == b'12'
        usb.usb_dev.bulkRead.assert_called_with(0x82, 300, 0)

        assert usb.read(100) == b'34'
        usb.usb_dev.bulkRead.assert_called_with(0x82, 300, 100)

        with pytest.raises(IOError) as excinfo:
            usb.read()
        assert excinfo.value.errno == errno.ETIMEDOUT

        with pytest.raises(IOError) as excinfo:
            usb.read()
        assert excinfo.value.errno == errno.ENODEV

        with pytest.raises(IOError) as excinfo:
            usb.read()
        assert excinfo.value.errno == errno.EIO

        with pytest.raises(IOError) as excinfo:
            usb.read()
        assert excinfo.value.errno == errno.EIO

    def test_write(self, usb):
        usb.write(b'12')
        usb.usb_dev.bulkWrite.assert_called_with(0x02, b'12', 0)

        usb.write(b'12', 100)
        usb.usb_dev.bulkWrite.assert_called_with(0x02, b'12', 100)

        usb.write(64 * b'1', 100)
        usb.usb_dev.bulkWrite.assert_has_calls([
            call(0x02, 64 * b'1', 100),
            call(0x02, b'', 100),
        ])

        usb.usb_dev.bulkWrite.side_effect = [
            rfid.reader.transport.libusb.USBErrorTimeout,
            rfid.reader.transport.libusb.USBErrorNoDevice,
            rfid.reader.transport.libusb.USBError,
        ]
        with pytest.raises(IOError) as excinfo:
            usb.write(b'12')
        assert excinfo.value.errno == errno.ETIMEDOUT

        with pytest.raises(IOError) as excinfo:
            usb.write(b'12')
        assert excinfo.value.errno == errno.ENODEV

        with pytest.raises(IOError) as excinfo:
            usb.write(b'12')
        assert excinfo.value.errno == errno.EIO

    def test_read_write_closed(self, usb):
        usb.close()
        with pytest.raises(rfid.TransportError) as excinfo:
            usb.read()
        assert excinfo.value.errno == errno.ENODEV
        with pytest.raises(rfid.TransportError) as excinfo:
            usb.write(b'12')
        assert excinfo.value.errno == errno.ENODEV


class TestCCID:
    @pytest.fixture()  # noqa: F811
    def usb(self, mocker):
        mocker.patch('rfid.reader.transport.USB.__init__').return_value = None
        usb = rfid.reader.transport.USB(1, 1)
        mocker.patch.object(usb, 'write', autospec=True)
        mocker.patch.object(usb, 'read', autospec=True)
        usb.timeout = 0.1
        usb._sequence = 0
        usb.context = None
        usb.usb_dev = None
        return usb

    def test_transmit(self, usb):
        usb.read.side_effect = [
            HEX('80 0a000000 0001028100 41435231323255323037'),
            HEX('80 02000000 0002008100 9000'),
        ]
        assert usb.transmit(HEX('FF00480000')) == b'ACR122U207'
        assert usb.transmit(HEX('FF00520000')) == b'\x90\x00'
        assert usb.write.mock_calls == [call(_) for _ in [
            HEX('6f05000000 0000000000 ff00480000'),
            HEX('6f05000000 0001000000 ff00520000'),
        ]]
        assert usb.read.mock_calls == [call(100), call(100)]

    def test_sequence_wraps(self, usb):
        usb._sequence = 255
        usb.read.side_effect = 2 * [HEX('80 02000000 0000008100 9000')]
        usb.transmit(HEX('FF00520000'))
        usb.transmit(HEX('FF00520000'))
        assert usb.write.mock_calls == [call(_) for _ in [
            HEX('6f05000000 00ff000000 ff00520000'),
            HEX('6f05000000 0000000000 ff00520000'),
        ]]

    @pytest.mark.parametrize("frame", [
        '80 02000000 000000',
        '81 02000000 0000008100 9000',
        '80 03000000 0000008100 9000',
        '80 02000000 0000408100 9000',
        '80 02000000 0000418100 9000',
    ])
    def test_transmit_error(self, usb, frame):
        usb.read.side_effect = [HEX(frame)]
        with pytest.raises(rfid.TransportError) as excinfo:
            usb.transmit(HEX('FF00480000'))
        assert excinfo.value.errno == errno.EIO

    def test_transmit_timeout(self, usb):
        usb.read.side_effect = [rfid.TransportError(errno.ETIMEDOUT)]
        with pytest.raises(IOError) as excinfo:
            usb.transmit(HEX('FF00480000'))
        assert excinfo.value.errno == errno.ETIMEDOUT

    def test_get_atr(self, usb):
        usb.read.side_effect = [
            HEX('80 14000000 0000000000'
                '3b8f8001804f0ca0000003060300030000000068'),
        ]
        atr = usb.get_atr()
        assert atr == HEX('3b8f8001804f0ca0000003060300030000000068')
        assert usb.write.mock_calls == [
            call(HEX('62 00000000 0000000000')),
        ]

    @pytest.mark.parametrize("frame", [
        '80 00000000 0000420000',
        '80 00000000 000040fe00',
    ])
    def test_get_atr_no_card(self, usb, frame):
        usb.read.side_effect = [HEX(frame)]
        assert usb.get_atr() is None
