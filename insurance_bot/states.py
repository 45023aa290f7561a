from enum import Enum


class Stage(str, Enum):
    waiting_passport = "waiting_passport"
    waiting_vehicle_doc = "waiting_vehicle_doc"
    waiting_price = "waiting_price"
    complete = "complete"
