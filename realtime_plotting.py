import collections
import logging
import time
from threading import Thread

import board
import busio
import matplotlib.animation as animation
import matplotlib.pyplot as plt

from vl53l0x import VL53L0X, VL53L0XError


class sensorPlot:
    def __init__(self, address=0x29, configFile=None, plotLength=100):
        self.address = address
        self.plotMaxLength = plotLength
        self.distance = None
        self.data = collections.deque([0.0] * plotLength, maxlen=plotLength)
        self.isRun = True
        self.isReceiving = False
        self.thread = None
        self.plotTimer = 0
        self.previousTimer = 0
        self.log = logging.getLogger('plot')

        self.log.info('Trying to open VL53L0X at %#04x', address)
        self.i2c = busio.I2C(board.SCL, board.SDA)
        # Only the background thread talks to the sensor once it is running
        self.tof = VL53L0X(self.i2c, address)
        self.tof.init()
        if configFile:
            self.tof.load_configuration(configFile)
        self.log.info('Opened VL53L0X at %#04x', address)


    def readSensorStart(self):
        if self.thread is None:
            self.thread = Thread(target=self.backgroundThread)
            self.thread.start()
            # Block till we start receiving values
            while not self.isReceiving:
                time.sleep(0.1)


    def getSensorData(self, frame, lines, lineValueText, lineLabel, timeText):
        currentTimer = time.perf_counter()
        self.plotTimer = int((currentTimer - self.previousTimer) * 1000)  # the first reading will be erroneous
        self.previousTimer = currentTimer
        timeText.set_text('Plot Interval = ' + str(self.plotTimer) + 'ms')
        value = float(self.distance) if self.distance is not None else 0.0
        self.data.append(value)  # we get the latest data point and append it to our array
        lines.set_data(range(self.plotMaxLength), self.data)
        lineValueText.set_text(f'{lineLabel} = {value:.0f}mm')


    def backgroundThread(self):  # retrieve data
        try:
            while self.isRun:
                self.distance = self.tof.range()
                self.isReceiving = True
        except VL53L0XError as e:
            self.log.error('Sensor stopped responding: %s', e)
            self.isReceiving = True
            raise


    def close(self):
        self.isRun = False
        self.thread.join()
        self.i2c.deinit()
        self.log.info('Disconnected...')


def main():
    logging.basicConfig(level=logging.INFO)
    maxPlotLength = 100
    s = sensorPlot(plotLength=maxPlotLength)  # initializes all required variables
    s.readSensorStart()  # starts background thread

    # plotting starts below
    pltInterval = 100  # Period at which the plot animation updates [ms]
    xmin = 0
    xmax = maxPlotLength
    ymin = 0
    ymax = 1000
    fig = plt.figure()
    ax = plt.axes(xlim=(xmin, xmax), ylim=(float(ymin - (ymax - ymin) / 10), float(ymax + (ymax - ymin) / 10)))
    ax.set_title('Real time Display')
    ax.set_xlabel("time")
    ax.set_ylabel("Distance [mm]")

    lineLabel = 'Distance'
    timeText = ax.text(0.50, 0.95, '', transform=ax.transAxes)
    lines = ax.plot([], [], '.-', label=lineLabel)[0]
    lineValueText = ax.text(0.50, 0.90, '', transform=ax.transAxes)
    anim = animation.FuncAnimation(fig, s.getSensorData, fargs=(lines, lineValueText, lineLabel, timeText),
                                   interval=pltInterval)  # fargs has to be a tuple

    plt.legend(loc="upper left")
    plt.show()

    s.close()


if __name__ == '__main__':
    main()
