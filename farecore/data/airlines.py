"""Static carrier and aircraft reference data used by normalization."""

AIRLINE_NAMES: dict[str, str] = {
    "AC": "Air Canada", "WS": "WestJet", "AA": "American Airlines",
    "DL": "Delta Air Lines", "UA": "United Airlines", "B6": "JetBlue Airways",
    "NK": "Spirit Airlines", "F8": "Flair Airlines", "BA": "British Airways",
    "LH": "Lufthansa", "AF": "Air France", "KL": "KLM",
    "LX": "Swiss", "OS": "Austrian", "EK": "Emirates",
    "QR": "Qatar Airways", "SQ": "Singapore Airlines", "CX": "Cathay Pacific",
    "NH": "ANA", "JL": "Japan Airlines", "AS": "Alaska Airlines",
    "WN": "Southwest Airlines", "TS": "Air Transat", "PD": "Porter Airlines",
    "VS": "Virgin Atlantic", "FI": "Icelandair", "TP": "TAP Air Portugal",
    "AY": "Finnair", "SK": "SAS", "IB": "Iberia",
}

# Carriers with a recognised sustainability programme
ECO_CERTIFIED_CARRIERS = {"KL", "LH", "AF", "SQ", "BA"}

AIRCRAFT_NAMES: dict[str, str] = {
    "319": "Airbus A319", "320": "Airbus A320", "321": "Airbus A321",
    "32N": "Airbus A320neo", "32Q": "Airbus A321neo",
    "332": "Airbus A330-200", "333": "Airbus A330-300", "339": "Airbus A330-900neo",
    "359": "Airbus A350-900", "351": "Airbus A350-1000", "388": "Airbus A380-800",
    "73H": "Boeing 737-800", "738": "Boeing 737-800", "7M8": "Boeing 737 MAX 8",
    "763": "Boeing 767-300", "772": "Boeing 777-200", "77W": "Boeing 777-300ER",
    "788": "Boeing 787-8", "789": "Boeing 787-9", "78X": "Boeing 787-10",
    "E75": "Embraer 175", "E90": "Embraer 190", "CR9": "Bombardier CRJ900",
    "DH4": "De Havilland Dash 8-400",
}

UNKNOWN_AIRCRAFT = "Unknown aircraft"


def airline_name(code: str, dictionary: dict[str, str] | None = None) -> str:
    """Resolve a carrier name, degrading to a generic placeholder."""
    if dictionary and dictionary.get(code):
        return dictionary[code].title()
    return AIRLINE_NAMES.get(code, f"Airline {code}" if code else "Unknown airline")


def aircraft_name(code: str | None, dictionary: dict[str, str] | None = None) -> str:
    if not code:
        return UNKNOWN_AIRCRAFT
    if dictionary and dictionary.get(code):
        return dictionary[code].title()
    return AIRCRAFT_NAMES.get(code, UNKNOWN_AIRCRAFT)
