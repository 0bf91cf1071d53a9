import errno


class FakeI2C:
    """In-memory stand-in for busio.I2C with one VL53L0X register file behind it.

    Registers are kept per page (the value last written to 0xFF). Values queued
    with script() are returned by consecutive reads of that register before
    falling back to the register file, which is how polled status registers
    are simulated.
    """

    def __init__(self, address=0x29):
        self.address = address
        self.page = 0
        self.registers = {}
        self.scripts = {}
        self.events = []
        self.fail = False
        self._locked = False

    def set_register(self, register, value, page=0):
        self.registers[(page, register)] = value

    def set_registers(self, register, values, page=0):
        for offset, value in enumerate(values):
            self.set_register(register + offset, value, page)

    def register(self, register, page=0):
        return self.registers.get((page, register), 0)

    def script(self, register, values, page=0):
        self.scripts[(page, register)] = list(values)

    @property
    def writes(self):
        return [event[1:] for event in self.events if event[0] == 'w']

    @property
    def reads(self):
        return [event[1:] for event in self.events if event[0] == 'r']

    def writes_to(self, register, page=0):
        return [data for (p, r, data) in self.writes if (p, r) == (page, register)]

    # busio.I2C interface used by adafruit_bus_device

    def try_lock(self):
        if self._locked:
            return False
        self._locked = True
        return True

    def unlock(self):
        self._locked = False

    def writeto(self, address, buffer, *, start=0, end=None):
        self._check(address)
        data = bytes(buffer[start:end])
        if not data:
            return
        register, payload = data[0], data[1:]
        self.events.append(('w', self.page, register, payload))
        for offset, value in enumerate(payload):
            if register + offset == 0xFF:
                self.page = value
            else:
                self.registers[(self.page, register + offset)] = value

    def readfrom_into(self, address, buffer, *, start=0, end=None):
        self._check(address)
        end = len(buffer) if end is None else end
        for i in range(start, end):
            buffer[i] = 0

    def writeto_then_readfrom(self, address, out_buffer, in_buffer, *, out_start=0, out_end=None, in_start=0,
                              in_end=None):
        self._check(address)
        register = out_buffer[out_start]
        in_end = len(in_buffer) if in_end is None else in_end
        values = [self._read(register + i) for i in range(in_end - in_start)]
        in_buffer[in_start:in_end] = bytes(values)
        self.events.append(('r', self.page, register, bytes(values)))

    def deinit(self):
        pass

    def _read(self, register):
        queue = self.scripts.get((self.page, register))
        if queue:
            return queue.pop(0)
        return self.registers.get((self.page, register), 0)

    def _check(self, address):
        if address != self.address:
            raise OSError(errno.ENXIO, 'No such device or address')
        if self.fail:
            raise OSError(errno.EIO, 'Input/output error')


def vl53l0x_bus(address=0x29):
    """A bus whose register file answers init() like a factory fresh sensor."""
    bus = FakeI2C(address)
    bus.set_register(0xC0, 0xEE)  # model ID
    bus.set_register(0x91, 0x3C, page=1)  # stop variable
    bus.set_register(0x13, 0x07)  # interrupt status: ready
    bus.set_register(0x84, 0x11)  # GPIO mux
    bus.set_registers(0xB0, [0xFF] * 6)  # reference SPAD map
    # SPAD info ready on the second poll, then 5 aperture SPADs
    bus.script(0x83, [0x00, 0x10, 0x85], page=7)
    return bus
