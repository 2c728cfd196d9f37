import logging
from collections import OrderedDict
from pathlib import Path

from chardet import UniversalDetector
import petl as etl

logger = logging.getLogger(__name__)


def petl_record_to_dict(row):
    """convert a PETL Record object to an ordered dictionary"""
    return OrderedDict({i[0]: i[1] for i in zip(row.flds, row)})


def validate_petl_record_w_schema(row, schema):
    """takes a PETL table row (Record) and validates it against a Marshmallow Schema.

    :param row: a single PETL table row/record object
    :type row: petl.Record
    :param schema: a Marshmallow schema used to validate the values in the row
    :type schema: marshmallow.schema
    :return: a dictionary of errors returned by the schema validation, or None
    :rtype: dict
    """
    errors = schema.validate(petl_record_to_dict(row))
    if errors:
        return errors
    return None


def convert_value_via_xwalk(k, crosswalk, preserve_non_matches=True, no_match_value=None):
    """Returns match from a lookup (dictionary), with add'l params for fallbacks.
    Used with the context of an petl.convert lambda

    :param k: the value to look up
    :param crosswalk: lookup of values to their replacements
    :type crosswalk: dict
    :param preserve_non_matches: return `k` when it isn't in the crosswalk, defaults to True
    :type preserve_non_matches: bool, optional
    :param no_match_value: returned for non-matches if not preserving them, defaults to None
    :return: the crosswalked value
    """
    if k in crosswalk.keys():
        return crosswalk[k]
    else:
        if preserve_non_matches:
            return k
        else:
            return no_match_value


def get_type(typ, fallback=str):
    """gets the definitive type of the thing, handling Unions types by returning
    the first possible type that isn't NoneType.
    """
    if type(typ) is not type:
        types = [t for t in getattr(typ, "__args__", ()) if t != type(None)]
        if len(types) > 0:
            return get_type(types[0], fallback)
        else:
            return fallback
    return typ


def detect_encoding(source):
    """sniff the encoding of a text file. Anything that decodes as UTF-8 is
    read as UTF-8 (BOM or not); otherwise chardet makes the call."""
    with open(source, 'rb') as file_open:
        raw = file_open.read()
    try:
        raw.decode("utf-8")
        return "utf-8-sig"
    except UnicodeDecodeError:
        pass

    detector = UniversalDetector()
    for line in raw.splitlines(keepends=True):
        detector.feed(line)
        if detector.done:
            break
    detector.close()
    return detector.result['encoding']


def read_csv_with_petl(source, **kwargs):
    """reads a CSV into PETL, handling different file encodings to ensure a
    clean result (i.e., no BOM in the header).

    :param source: path to the CSV
    :type source: str, Path
    :return: a PETL table
    """
    file_encoding = detect_encoding(source)
    if file_encoding is None:
        file_encoding = "utf-8-sig"
    logger.debug("CSV file encoding for %s: %s", Path(source).name, file_encoding)

    return etl.fromcsv(source=str(source), encoding=file_encoding, **kwargs)


def header_key(header):
    """normalize a column header for lookups: lower-cased, with any trailing
    parenthetical unit dropped, e.g. 'Catchment Area (m²)' -> 'catchment area'
    """
    return str(header).split("(")[0].strip().lower()
