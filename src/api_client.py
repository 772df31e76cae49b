#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
API Client for the zone console backend.
Provides methods for validating credentials and managing DNS zones and records.
"""

import logging
import requests

from errors import AuthError, TransientNetworkError, ValidationError, ZoneConsoleError

logger = logging.getLogger(__name__)

class APIClient:
    """Client for the console backend that handles requests and responses."""

    def __init__(self, config_manager, session=None):
        """
        Initialize the API client.

        Args:
            config_manager: ConfigManager instance that provides the API URL and timeout
            session: requests.Session carrying the backend session cookie
        """
        self.config_manager = config_manager
        self.session = session or requests.Session()
        self.last_error = None
        self.is_online = False

    def _error(self, error):
        """Build the error payload returned with a failed call from a ZoneConsoleError."""
        return {
            "message": error.message,
            "kind": error.kind.value,
            "status": error.details.get("status"),
            "raw_response": error.details.get("raw_response") or {},
        }

    def _make_request(self, method, endpoint, data=None, params=None):
        """
        Make a request to the backend.

        Args:
            method (str): HTTP method (GET, POST, PUT, DELETE)
            endpoint (str): API endpoint
            data (dict, optional): JSON payload
            params (dict, optional): Query parameters

        Returns:
            tuple: (success, response_data or error dict)
        """
        try:
            return True, self._send(method, endpoint, data, params)
        except ZoneConsoleError as e:
            self.last_error = e.message
            return False, self._error(e)

    def _send(self, method, endpoint, data=None, params=None):
        """
        Perform the HTTP call and return the decoded body.

        Raises:
            ValidationError: for an unsupported method
            AuthError: when the backend answers 401
            TransientNetworkError: when the backend cannot be reached
            ZoneConsoleError: for any other failed answer
        """
        if method not in ('GET', 'POST', 'PUT', 'DELETE'):
            raise ValidationError("unsupported_method", f"Unsupported HTTP method: {method}")

        url = f"{self.config_manager.get_api_url()}{endpoint}"
        timeout = self.config_manager.get_request_timeout()

        try:
            response = self.session.request(method, url, json=data, params=params, timeout=timeout)

            # Check if request was successful
            response.raise_for_status()

            # Update online status
            self.is_online = True

            body = response.json() if response.content else {}

        except requests.exceptions.ConnectionError as e:
            self.is_online = False
            logger.error(f"Connection error: {str(e)}")
            raise TransientNetworkError("connection_error",
                                        "Connection error. Please check your internet connection.") from e

        except requests.exceptions.Timeout as e:
            logger.error("Request timed out")
            raise TransientNetworkError("timeout", "Request timed out. Please try again later.") from e

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code
            logger.error(f"HTTP error {status}: {e.response.text}")

            # Try to parse error response
            error_message = "An error occurred"
            parsed_response = {}
            try:
                error_data = e.response.json()
                parsed_response = error_data
                if isinstance(error_data, dict):
                    error_message = error_data.get("message") or error_message
                    if error_data.get("error"):
                        error_message = f"{error_message}: {error_data['error']}"
            except ValueError:
                error_message = e.response.text or error_message

            error_class = AuthError if status == 401 else ZoneConsoleError
            raise error_class(f"http_{status}", f"Error {status}: {error_message}",
                              {"status": status, "raw_response": parsed_response}) from e

        except ValueError as e:
            logger.error(f"Invalid JSON response: {str(e)}")
            raise ZoneConsoleError("invalid_response", "The server returned an invalid response.") from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Unexpected error: {str(e)}")
            raise TransientNetworkError("request_failed", f"An unexpected error occurred: {str(e)}") from e

        if isinstance(body, dict) and body.get("success") is False:
            message = body.get("message") or "Request failed"
            logger.error(f"{method} {endpoint} failed: {message}")
            raise ZoneConsoleError("request_failed", message,
                                   {"status": response.status_code, "raw_response": body})
        return body

    def validate_credentials(self, identifier, secret):
        """
        Validate account credentials and open a backend session.

        Args:
            identifier (str): Account email
            secret (str): API key

        Returns:
            tuple: (success, response data or error dict)
        """
        return self._make_request('POST', '/validate-api', {'email': identifier, 'apiKey': secret})

    def logout(self):
        """Close the backend session."""
        success, response = self._make_request('GET', '/logout')
        self.session.cookies.clear()
        return success, response

    def get_domains(self, page=1, per_page=20, search=None):
        """
        Get one page of domains (zones).

        Args:
            page (int): 1-based page number
            per_page (int): Page size
            search (str, optional): Server-side search term

        Returns:
            tuple: (success, {"data": [...], "pagination": {...}} or error dict)
        """
        params = {'page': page, 'per_page': per_page}
        if search:
            params['search'] = search
        return self._make_request('GET', '/api/domains', params=params)

    def add_domains(self, domains_text, template_id="", template_records=None):
        """
        Add domains, optionally applying template records to each.

        Args:
            domains_text (str): Newline separated domain names
            template_id (str): Template id the records came from
            template_records (list): Bulk record lines to create in each zone

        Returns:
            tuple: (success, {"message", "results"} or error dict)
        """
        data = {
            'domains': domains_text,
            'template': template_id or "",
            'templateRecords': template_records or [],
        }
        return self._make_request('POST', '/api/domains/add', data)

    def get_records(self, domain_name, page=1, per_page=50, search=None):
        """
        Get one page of DNS records for a domain.

        Args:
            domain_name (str): Domain name
            page (int): 1-based page number
            per_page (int): Page size
            search (str, optional): Server-side search term

        Returns:
            tuple: (success, {"data": [...], "pagination": {...}} or error dict)
        """
        params = {'page': page, 'per_page': per_page}
        if search:
            params['search'] = search
        return self._make_request('GET', f'/api/dns/{domain_name}', params=params)

    def apply_records(self, domain_name, records_text):
        """
        Create or update records from bulk lines.

        Args:
            domain_name (str): Domain name
            records_text (str): Newline separated bulk lines

        Returns:
            tuple: (success, {"message", "results"} or error dict)
        """
        return self._make_request('POST', f'/api/dns/{domain_name}', {'records': records_text})

    def update_record(self, domain_name, record_id, type, name, content, proxied):
        """
        Update an existing DNS record.

        Args:
            domain_name (str): Domain name
            record_id (str): Record identifier
            type (str): Record type (A, CNAME, MX, TXT, etc.)
            name (str): Record name or @ for the apex
            content (str): Record content
            proxied (bool): Route through the provider edge

        Returns:
            tuple: (success, response data or error dict)
        """
        data = {
            'type': type,
            'name': name,
            'content': content,
            'proxied': proxied
        }
        return self._make_request('PUT', f'/api/dns/{domain_name}/{record_id}', data)

    def delete_record(self, domain_name, record_id):
        """
        Delete a DNS record.

        Returns:
            tuple: (success, response data or error dict)
        """
        return self._make_request('DELETE', f'/api/dns/{domain_name}/{record_id}')

    def delete_records_bulk(self, domain_name, record_ids):
        """
        Delete several DNS records in one call.

        Args:
            domain_name (str): Domain name
            record_ids (list): Record identifiers

        Returns:
            tuple: (success, {"results": [...], "total_count"} or error dict)
        """
        return self._make_request('DELETE', f'/api/dns/{domain_name}/bulk', {'record_ids': list(record_ids)})
