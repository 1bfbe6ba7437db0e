import logging
import time

import cv2
from dotenv import load_dotenv

from aslapp.backend.camera.capture import CameraCapture
from aslapp.backend.camera.overlay import draw_overlay
from aslapp.backend.ml.pipeline import RecognitionPipeline
from aslapp.backend.settings import load_settings

WINDOW = "ASL Classifier"


def main():
    load_dotenv()
    settings = load_settings()

    pipeline = RecognitionPipeline.from_settings(settings)

    try:
        with CameraCapture(pipeline, settings.camera_index, mirror=settings.mirror) as camera:
            while camera.is_running():
                frame = camera.latest_frame()
                if frame is None:
                    time.sleep(0.01)
                    continue

                cv2.imshow(WINDOW, draw_overlay(frame, pipeline.snapshot()))

                if cv2.waitKey(1) & 0xFF == ord("q"):
                    logging.info("Shutdown signal received.")
                    break
    except IOError as e:
        logging.error("Failed to open camera: %s", e)
    finally:
        cv2.destroyAllWindows()
        pipeline.close()
        logging.info("stats: %s", pipeline.stats())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        main()
    except KeyboardInterrupt:
        print("Exit")
