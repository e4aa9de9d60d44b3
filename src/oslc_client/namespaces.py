"""Namespaces used by the OSLC client, for use with `rdflib` code."""

from rdflib import Namespace
from rdflib.namespace import DCTERMS, FOAF, RDF, RDFS

oslc = Namespace("http://open-services.net/ns/core#")
"""[OSLC Core 2.0](https://docs.oasis-open-projects.org/oslc-op/core/v3.0/oslc-core.html)"""

oslc_cm = Namespace("http://open-services.net/ns/cm#")
"""OSLC Change Management 2.0"""

oslc_rm = Namespace("http://open-services.net/ns/rm#")
"""OSLC Requirements Management 2.0"""

oslc_qm = Namespace("http://open-services.net/ns/qm#")
"""OSLC Quality Management 2.0"""

oslc_cm1 = Namespace("http://open-services.net/xmlns/cm/1.0/")
"""Jazz rootservices discovery terms for Change Management"""

oslc_rm1 = Namespace("http://open-services.net/xmlns/rm/1.0/")
"""Jazz rootservices discovery terms for Requirements Management"""

oslc_qm1 = Namespace("http://open-services.net/xmlns/qm/1.0/")
"""Jazz rootservices discovery terms for Quality Management"""

jd = Namespace("http://jazz.net/xmlns/prod/jazz/discovery/1.0/")
"""Jazz discovery"""

dcterms = DCTERMS
foaf = FOAF
rdf = RDF
rdfs = RDFS

__all__ = [
    "oslc",
    "oslc_cm",
    "oslc_rm",
    "oslc_qm",
    "oslc_cm1",
    "oslc_rm1",
    "oslc_qm1",
    "jd",
    "dcterms",
    "foaf",
    "rdf",
    "rdfs",
]
