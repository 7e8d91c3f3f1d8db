"""vtjson schemas for data that crosses a trust boundary.

Session payloads come back from the client (signed, but possibly written by an
older release), and weather data may come from an injected provider.
"""

from vtjson import intersect, regex, size, union, url

flash_kind = union("success", "error", "info")
flash_text = intersect(str, size(0, 500))

flash_schema = {
    "kind": flash_kind,
    "title": flash_text,
    "body": flash_text,
}

temperature = regex(r"-?\d+(\.\d+)? F \(-?\d+(\.\d+)? C\)", name="temperature")

weather_location_schema = {
    "name": intersect(str, size(1, 80)),
    "forecast_url": url,
    "icon_url": url,
    "condition": intersect(str, size(1, 80)),
    "temperature": temperature,
}
