"""Unit conversions. Everything internal is SI (m, s); inputs and reports use
the customary drainage units (mm/hr, L/s, hectares).
"""
import pint

units = pint.UnitRegistry()


def mm_per_hour_to_meters_per_second(mm_per_hour) -> float:
    """convert rainfall intensity from mm/hr to m/s"""
    return units.Quantity(mm_per_hour, "mm / hour").m_as("m / s")


def hectares_to_square_meters(hectares) -> float:
    return units.Quantity(hectares, "hectare").m_as("m ** 2")


def square_meters_to_hectares(square_meters) -> float:
    return units.Quantity(square_meters, "m ** 2").m_as("hectare")


def cubic_meters_per_second_to_liters_per_second(m3_per_s) -> float:
    return units.Quantity(m3_per_s, "m ** 3 / s").m_as("liter / s")


def liters_per_second_to_cubic_meters_per_second(l_per_s) -> float:
    return units.Quantity(l_per_s, "liter / s").m_as("m ** 3 / s")


def meters_per_second_to_kilometers_per_hour(m_per_s) -> float:
    return units.Quantity(m_per_s, "m / s").m_as("km / hour")


def kilometers_per_hour_to_meters_per_second(km_per_h) -> float:
    return units.Quantity(km_per_h, "km / hour").m_as("m / s")
