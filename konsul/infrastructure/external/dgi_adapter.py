# konsul/infrastructure/external/dgi_adapter.py
import logging
import os
import re
from typing import Optional

import requests
from dotenv import load_dotenv
from lxml import etree

import config
from konsul.domain.exceptions import ExternalServiceError
from konsul.domain.ports.tax_id_directory import Contribuyente, TaxIdDirectory

load_dotenv()
logger = logging.getLogger(__name__)

SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
DGI_NS = "http://dgi.mef.gob.pa/"

ESTADOS = {"ACTIVO", "INACTIVO", "NO_HABIDO"}


def build_envelope(tipo_ruc: str, ruc: str) -> bytes:
    """Sobre SOAP de `ConsultarRuc`; lxml escapa los valores."""
    envelope = etree.Element(etree.QName(SOAP_NS, "Envelope"), nsmap={"soap": SOAP_NS, "dgi": DGI_NS})
    body = etree.SubElement(envelope, etree.QName(SOAP_NS, "Body"))
    consulta = etree.SubElement(body, etree.QName(DGI_NS, "ConsultarRuc"))
    etree.SubElement(consulta, etree.QName(DGI_NS, "tipoRuc")).text = tipo_ruc
    etree.SubElement(consulta, etree.QName(DGI_NS, "ruc")).text = ruc
    return etree.tostring(envelope, xml_declaration=True, encoding="utf-8")


def normalize_ruc(value: str) -> str:
    """'8-754-1234 DV 00' -> '8-754-1234'"""
    clean = (value or "").strip().upper()
    clean = re.split(r"\s*DV\s*", clean)[0]
    return re.sub(r"\s+", "", clean)


def tipo_persona_for(ruc: str) -> str:
    # Las cédulas panameñas (personas naturales) empiezan por provincia o PE/E/N.
    return "NATURAL" if re.match(r"^(\d{1,2}|PE|E|N)-\d+-\d+$", ruc) else "JURIDICA"


class DgiAdapter(TaxIdDirectory):
    """
    Adaptador para el servicio SOAP `ConsultarRuc` de la DGI de Panamá.
    """
    def __init__(self):
        self.url = config.DGI_CONSULTA_RUC_URL
        self.user = os.getenv("DGI_USER")
        self.password = os.getenv("DGI_PASSWORD")

    def _parse_response(self, content: bytes, ruc: str) -> Optional[Contribuyente]:
        root = etree.fromstring(content)

        def find_text(tag: str, default: Optional[str] = None) -> Optional[str]:
            matches = root.xpath(f"//*[local-name()='{tag}']")
            if not matches or matches[0].text is None:
                return default
            return matches[0].text.strip()

        razon_social = find_text("razonSocial") or find_text("nombre")
        if not razon_social:
            return None

        estado = (find_text("estado", "ACTIVO") or "ACTIVO").upper().replace(" ", "_")
        tipo = (find_text("tipoPersona") or tipo_persona_for(ruc)).upper()
        return Contribuyente(
            ruc=find_text("ruc", ruc),
            dv=find_text("dv", ""),
            razon_social=razon_social,
            tipo_persona="NATURAL" if tipo.startswith("N") else "JURIDICA",
            direccion=find_text("direccion"),
            estado=estado if estado in ESTADOS else "INACTIVO",
            email=find_text("email"),
        )

    def lookup(self, ruc: str) -> Optional[Contribuyente]:
        clean_ruc = normalize_ruc(ruc)
        if len(clean_ruc) < 5:
            return None

        tipo_ruc = "1" if tipo_persona_for(clean_ruc) == "NATURAL" else "2"
        body = build_envelope(tipo_ruc, clean_ruc)
        headers = {"Content-Type": "text/xml; charset=utf-8", "SOAPAction": "ConsultarRuc"}
        auth = (self.user, self.password) if self.user and self.password else None

        logger.info(f"Consultando RUC {clean_ruc} en la DGI...")
        try:
            response = requests.post(self.url, data=body, headers=headers, auth=auth, timeout=config.HTTP_TIMEOUT)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"ERROR al consultar la DGI: {e}")
            raise ExternalServiceError("DGI", str(e)) from e

        try:
            return self._parse_response(response.content, clean_ruc)
        except etree.XMLSyntaxError as e:
            raise ExternalServiceError("DGI", f"Respuesta XML inválida: {e}") from e
