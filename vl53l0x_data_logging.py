import argparse
import logging

import board
import busio
import pandas as pd

from vl53l0x import VL53L0X


def main():
    parser = argparse.ArgumentParser(description='Record VL53L0X distances to a CSV file until Ctrl-C.')
    parser.add_argument('--address', type=lambda x: int(x, 0), default=0x29, help='I2C address of the sensor')
    parser.add_argument('--config', help='YAML file with sensor settings')
    parser.add_argument('--output', default='log_data.csv', help='CSV file to write')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s %(message)s')

    i2c = busio.I2C(board.SCL, board.SDA)
    tof = VL53L0X(i2c, args.address)
    tof.init()
    if args.config:
        tof.load_configuration(args.config)

    csv_data = []
    start_time = None
    try:
        while True:
            distance = tof.range()
            start_time = start_time or pd.Timestamp.now()

            delta_time = pd.Timestamp.now() - start_time
            csv_data.append((delta_time, distance))
            print(f'Recorded {len(csv_data)} rows in {delta_time}...\r', end='')
    except KeyboardInterrupt:
        pass
    finally:
        i2c.deinit()
    df = pd.DataFrame(csv_data, columns=['timestamp', 'distance_mm'])
    print(f'\nSaving table with shape {df.shape} to "{args.output}"...')
    df.to_csv(args.output)


if __name__ == '__main__':
    main()
