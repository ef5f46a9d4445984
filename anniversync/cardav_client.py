"""
CardDAV client for fetching contacts with birthdays and anniversaries
"""

import re
import hashlib
import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from urllib.parse import urlparse, unquote
import vobject
import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

from .models import Contact, ContactPage, FetchFailure, PartialDate
from .records import extract_identity_tag

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
# Apple Contacts stores year-less dates with this placeholder year
APPLE_OMIT_YEAR = 1604

PROPFIND_BODY = '''<?xml version="1.0" encoding="utf-8" ?>
<D:propfind xmlns:D="DAV:">
    <D:prop>
        <D:getetag />
        <D:getcontenttype />
        <D:resourcetype />
    </D:prop>
</D:propfind>'''


def _valid_month_day(month: Optional[int], day: Optional[int]) -> bool:
    if month is None:
        return day is None or 1 <= day <= 31
    if day is None:
        return 1 <= month <= 12
    try:
        # 2000 is a leap year, so Feb 29 passes
        date(2000, month, day)
    except ValueError:
        return False
    return True


def parse_partial_date(value) -> Optional[PartialDate]:
    """Parse a vCard date value into its known parts"""
    if isinstance(value, datetime):
        return PartialDate(value.year, value.month, value.day)
    if isinstance(value, date):
        return PartialDate(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip().split('T')[0]
    parsed = None

    if re.fullmatch(r'\d{8}', text):
        parsed = PartialDate(int(text[:4]), int(text[4:6]), int(text[6:]))
    elif re.fullmatch(r'\d{4}-\d{2}-\d{2}', text):
        parsed = PartialDate(int(text[:4]), int(text[5:7]), int(text[8:]))
    elif re.fullmatch(r'--\d{4}', text):
        parsed = PartialDate(None, int(text[2:4]), int(text[4:]))
    elif re.fullmatch(r'--\d{2}-\d{2}', text):
        parsed = PartialDate(None, int(text[2:4]), int(text[5:]))
    elif re.fullmatch(r'---\d{2}', text):
        parsed = PartialDate(None, None, int(text[3:]))
    elif re.fullmatch(r'\d{4}-\d{2}', text):
        parsed = PartialDate(int(text[:4]), int(text[5:]), None)
    elif re.fullmatch(r'\d{4}', text):
        parsed = PartialDate(int(text), None, None)

    if parsed is None or not _valid_month_day(parsed.month, parsed.day):
        return None
    return parsed


def _line_date(line) -> Optional[PartialDate]:
    parsed = parse_partial_date(line.value)
    if parsed is None:
        return None
    omit_year = line.params.get('X-APPLE-OMIT-YEAR')
    if parsed.year == APPLE_OMIT_YEAR or (omit_year and str(parsed.year) in omit_year):
        parsed = PartialDate(None, parsed.month, parsed.day)
    return parsed


def _clean_label(label: str) -> str:
    # Apple wraps built-in labels as _$!<Anniversary>!$_
    match = re.fullmatch(r'_\$!<(.+)>!\$_', label.strip())
    return match.group(1) if match else label.strip()


def contact_identity(uid: str, href: str = '') -> str:
    """Stable people/c<digits> tag for a contact"""
    for candidate in (uid, href):
        tag = extract_identity_tag(candidate)
        if tag:
            return tag
        stem = candidate.rstrip('/').rsplit('/', 1)[-1]
        stem = unquote(stem)
        if stem.endswith('.vcf'):
            stem = stem[:-4]
        if re.fullmatch(r'c\d+', stem):
            return f"people/{stem}"

    source = uid or href
    digest = hashlib.sha1(source.encode('utf-8')).hexdigest()
    return f"people/c{int(digest[:15], 16)}"


def _display_name(vcard) -> str:
    if hasattr(vcard, 'fn') and vcard.fn.value.strip():
        return vcard.fn.value.strip()
    if hasattr(vcard, 'n'):
        n = vcard.n.value
        name_parts = [part for part in (n.given, n.family) if part]
        if name_parts:
            return ' '.join(name_parts)
    return 'Unknown'


def parse_vcard(vcard_text: str, href: str = '', anniversary_label: str = 'Jahrestag') -> Optional[Contact]:
    """Parse a single vCard into a Contact, or None when it carries no dates"""
    vcard_text = vcard_text.strip()
    if not vcard_text.startswith('BEGIN:VCARD'):
        logger.debug("Invalid vCard: doesn't start with BEGIN:VCARD")
        return None

    try:
        vcard = vobject.readOne(vcard_text)
    except Exception as e:
        logger.warning(f"Error parsing vCard {href}: {e}")
        return None

    name = _display_name(vcard)
    uid = vcard.uid.value.strip() if hasattr(vcard, 'uid') else ''
    contact = Contact(id=contact_identity(uid, href), display_name=name)

    for line in vcard.contents.get('bday', []):
        parsed = _line_date(line)
        if parsed is None:
            logger.warning(f"Could not parse birthday for {name}: {line.value}")
            continue
        contact.birthdays.append(parsed)

    for line in vcard.contents.get('anniversary', []) + vcard.contents.get('x-anniversary', []):
        parsed = _line_date(line)
        if parsed is None:
            logger.warning(f"Could not parse anniversary for {name}: {line.value}")
            continue
        contact.events.append((anniversary_label, parsed))

    labels = {line.group: line.value for line in vcard.contents.get('x-ablabel', []) if line.group}
    for line in vcard.contents.get('x-abdate', []):
        parsed = _line_date(line)
        if parsed is None:
            logger.warning(f"Could not parse date for {name}: {line.value}")
            continue
        label = _clean_label(labels.get(line.group, '')) or anniversary_label
        contact.events.append((label, parsed))

    if not contact.birthdays and not contact.events:
        logger.debug(f"No dates found for contact: {name}")
        return None

    logger.debug(f"Parsed contact: {name} ({contact.id}) with "
                 f"{len(contact.birthdays)} birthday(s), {len(contact.events)} event(s)")
    return contact


class CardDAVClient:
    """Client for reading contacts from CardDAV server, one addressbook per page"""

    def __init__(self, server_url: str, username: str, password: str,
                 anniversary_label: str = 'Jahrestag'):
        self.server_url = server_url.rstrip('/')
        self.username = username
        self.anniversary_label = anniversary_label

        self.basic_auth = HTTPBasicAuth(username, password)
        self.digest_auth = HTTPDigestAuth(username, password)
        self.auth = None

        self.addressbook_urls: List[str] = []
        self._test_auth_and_discover()

    def _propfind(self, url: str, auth, body: Optional[str] = None) -> requests.Response:
        headers = {'Depth': '1'}
        if body:
            headers['Content-Type'] = 'application/xml; charset=utf-8'
        return requests.request('PROPFIND', url, auth=auth, headers=headers,
                                data=body, timeout=REQUEST_TIMEOUT)

    def _test_auth_and_discover(self):
        """Test authentication and discover all addressbooks at the given URL"""
        logger.info(f"Discovering addressbooks at: {self.server_url} as {self.username}")

        response = self._propfind(self.server_url, self.basic_auth)
        if response.status_code in (200, 207):
            self.auth = self.basic_auth
        elif response.status_code == 401:
            logger.info("Basic auth failed, trying Digest authentication...")
            response = self._propfind(self.server_url, self.digest_auth)
            if response.status_code not in (200, 207):
                raise FetchFailure(f"Authentication failed: {response.status_code}")
            self.auth = self.digest_auth
        else:
            raise FetchFailure(f"Authentication failed: {response.status_code}")

        logger.debug(f"Discovery response: {response.text[:1000]}...")
        self.addressbook_urls = self._extract_addressbooks(response.text)

        if not self.addressbook_urls:
            if self._is_addressbook(response.text):
                logger.info("Provided URL appears to be a single addressbook")
                self.addressbook_urls = [self.server_url]
            else:
                raise FetchFailure("No addressbooks found at the provided URL")

        logger.info(f"Discovered {len(self.addressbook_urls)} addressbooks:")
        for ab_url in self.addressbook_urls:
            logger.info(f"  - {ab_url}")

    def _extract_addressbooks(self, xml_response: str) -> List[str]:
        """Extract addressbook collection URLs from PROPFIND response"""
        addressbooks = []
        responses = re.findall(r'<d:response[^>]*>(.*?)</d:response>', xml_response,
                               re.DOTALL | re.IGNORECASE)

        for response_block in responses:
            href_match = re.search(r'<d:href[^>]*>([^<]+)</d:href>', response_block, re.IGNORECASE)
            if not href_match:
                continue
            href = href_match.group(1).strip()

            if self._is_addressbook(response_block):
                full_url = self._resolve_url(href)
                # Skip the parent collection itself
                if full_url.rstrip('/') != self.server_url:
                    addressbooks.append(full_url)

        return addressbooks

    def _is_addressbook(self, xml_response: str) -> bool:
        """Check if the response indicates this URL is an addressbook collection"""
        return ('card:addressbook' in xml_response or
                ('addressbook' in xml_response.lower() and
                 '<d:collection' in xml_response.lower()))

    def list_contacts(self, page_token: Optional[str] = None) -> ContactPage:
        """Return the contacts of one addressbook and the token of the next"""
        index = int(page_token) if page_token else 0
        if index >= len(self.addressbook_urls):
            return ContactPage(entries=[], next_page_token=None)

        entries = self._get_contacts_from_addressbook(self.addressbook_urls[index])
        next_index = index + 1
        next_token = str(next_index) if next_index < len(self.addressbook_urls) else None
        return ContactPage(entries=entries, next_page_token=next_token)

    def _get_contacts_from_addressbook(self, addressbook_url: str) -> List[Contact]:
        """Fetch contacts from a specific addressbook"""
        logger.info(f"Processing addressbook: {addressbook_url}")
        response = self._propfind(addressbook_url, self.auth, PROPFIND_BODY)
        if response.status_code not in (200, 207):
            raise FetchFailure(f"Failed to list {addressbook_url}: {response.status_code}")

        contacts = []
        for vcard_url in self._extract_vcard_urls(response.text):
            full_url = self._resolve_url(vcard_url)
            try:
                vcard_response = requests.get(full_url, auth=self.auth, timeout=REQUEST_TIMEOUT)
            except requests.exceptions.RequestException as e:
                logger.warning(f"Error fetching vCard {vcard_url}: {e}")
                continue
            if vcard_response.status_code != 200:
                logger.warning(f"Failed to fetch vCard {vcard_url}: {vcard_response.status_code}")
                continue

            contact = parse_vcard(vcard_response.text, vcard_url, self.anniversary_label)
            if contact:
                contacts.append(contact)

        logger.info(f"Found {len(contacts)} contacts with dates in {addressbook_url}")
        return contacts

    def _extract_vcard_urls(self, xml_response: str) -> List[str]:
        """Extract vCard URLs from PROPFIND response"""
        urls = []
        responses = re.findall(r'<d:response[^>]*>(.*?)</d:response>', xml_response,
                               re.DOTALL | re.IGNORECASE)

        for response_block in responses:
            href_match = re.search(r'<d:href[^>]*>([^<]+)</d:href>', response_block, re.IGNORECASE)
            if not href_match:
                continue
            href = href_match.group(1).strip()
            if href.endswith('/'):
                continue
            if href.lower().endswith('.vcf') or 'vcard' in response_block.lower():
                urls.append(href)

        logger.debug(f"Extracted {len(urls)} vCard URLs")
        return urls

    def _resolve_url(self, url: str) -> str:
        """Resolve relative URL to absolute URL"""
        if url.startswith('http'):
            return url
        if url.startswith('/'):
            parsed = urlparse(self.server_url)
            return f"{parsed.scheme}://{parsed.netloc}{url}"
        return f"{self.server_url}/{url.lstrip('/')}"


def collect_dates(contact: Contact) -> List[Tuple[str, PartialDate]]:
    """All dates of a contact as (label, date) pairs, for diagnostics"""
    return [('birthday', b) for b in contact.birthdays] + list(contact.events)
